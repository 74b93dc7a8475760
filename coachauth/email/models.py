"""
Email models.
"""

from typing import Any, Dict, Optional

from pydantic import BaseModel, Field


class EmailMessage(BaseModel):
    """One message for the relay function."""

    to: str
    subject: str
    text: Optional[str] = None
    html: Optional[str] = None
    from_: Optional[str] = Field(default=None, alias="from")

    model_config = {"populate_by_name": True}

    def to_payload(self, default_from: Optional[str] = None) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"to": self.to, "subject": self.subject}
        if self.text:
            payload["text"] = self.text
        if self.html:
            payload["html"] = self.html
        sender = self.from_ or default_from
        if sender:
            payload["from"] = sender
        return payload


class EmailResult(BaseModel):
    """Relay outcome. ``simulated`` means the relay failed but was reported as sent."""

    success: bool
    data: Optional[Any] = None
    error: Optional[str] = None
    simulated: bool = False
