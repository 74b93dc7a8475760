"""
Basic coachauth usage example.

This example demonstrates the core features of coachauth:
- Signing up and the verification email
- Signing in and the reconciled profile
- Resending verification with a cooldown
- Session health checks

Run with:
    python examples/basic_usage.py
"""

import asyncio
import logging

from coachauth import CoachAuth


async def main():
    logging.basicConfig(level=logging.INFO)

    # Create coachauth client (loads config from .env)
    coach = await CoachAuth.create()

    try:
        await coach.initialize()
        coach.store.add_listener(
            lambda state: print(f"  [state] authenticated={state.is_authenticated}")
        )

        # =================================================================
        # 1. Sign up
        # =================================================================
        print("Signing up...")

        signup = await coach.signup(
            email="new-client@example.com",
            password="client-password-123",
            full_name="New Client",
        )
        if signup.ok:
            print(f"  Created account, email sent: {signup.email_sent}")
        else:
            print(f"  Signup failed: {signup.error}")

        # =================================================================
        # 2. Sign in
        # =================================================================
        print("\nSigning in...")

        result = await coach.login("client@example.com", "client-password-123")
        if not result.ok:
            print(f"  Login failed: {result.error}")
            return

        profile = coach.profile
        print(f"  Logged in as {coach.identity.email}")
        if profile:
            print(f"  Email confirmed: {profile.email_confirmed}")
            print(f"  Admin: {coach.is_admin}")

        # =================================================================
        # 3. Resend verification
        # =================================================================
        if profile and not profile.email_confirmed:
            print("\nResending verification email...")

            await coach.resend_verification_email()
            remaining = coach.verification.cooldown_remaining(coach.identity.email)
            print(f"  Next resend allowed in {remaining}s")

            # A second request inside the cooldown is a no-op
            accepted = await coach.resend_verification_email()
            print(f"  Second request accepted: {accepted}")

        # =================================================================
        # 4. Session health
        # =================================================================
        print("\nChecking session health...")

        status = await coach.health.tick()
        print(f"  Health: {status.value}")

        # =================================================================
        # 5. Sign out
        # =================================================================
        await coach.logout()
        print("\nLogged out")

    finally:
        await coach.close()


if __name__ == "__main__":
    asyncio.run(main())
