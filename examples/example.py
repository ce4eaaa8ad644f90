"""Example usage of mfaflow.

Runs the enrollment wizard and the verification dialog against the
in-memory credential store, then shows the same wizard pointed at a real
service when ``MFAFLOW_BASE_URL`` is set.

Copyright (c) 2025 mfaflow. All rights reserved.
"""

import asyncio
import logging
import os

from mfaflow import (
    EnrollmentStep,
    MFAAccount,
    MFAClient,
    MFAFlowError,
    MFAMethod,
)
from mfaflow.memory import InMemoryCredentialStore

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

PASSWORD = "password"


async def local_demo() -> None:
    """Enroll TOTP, sign in with a backup code, then disable MFA."""
    store = InMemoryCredentialStore(email="demo@example.com", password=PASSWORD)
    account = MFAAccount(store)

    logger.info("=== Enrollment Example ===")
    wizard = account.enrollment_wizard(complete_delay=0)
    wizard.open()
    wizard.select_method(MFAMethod.TOTP)
    await wizard.start_setup()
    logger.info("Scan this URI with your authenticator app: %s", wizard.setup_data.qr_code_url)

    # In a real app the user types the code shown by their app
    wizard.enter_code(store.current_totp())
    await wizard.submit_code()
    backup_codes = wizard.backup_codes
    logger.info("Backup codes:\n%s", wizard.copy_backup_codes())
    await wizard.confirm_saved()
    assert wizard.step is EnrollmentStep.COMPLETE

    status = await account.status()
    logger.info(
        "MFA enabled with %s, %d backup codes",
        [m.value for m in status.available_methods],
        status.backup_codes_count,
    )

    logger.info("=== Verification Example ===")
    dialog = await account.verification_dialog()
    dialog.open()
    dialog.enter_code(backup_codes[0])
    outcome = await dialog.submit()
    logger.info(
        "Verified with a backup code, %d remaining", outcome.remaining_backup_codes
    )

    logger.info("=== Disable Example ===")
    dialog.open()
    dialog.enter_code(store.current_totp())
    await account.disable_with_dialog(PASSWORD, dialog)
    logger.info("MFA enabled: %s", (await account.status()).enabled)


async def remote_demo(base_url: str) -> None:
    """Show the enrollment status and start TOTP setup on a real service."""
    async with MFAClient(base_url, api_key=os.environ.get("MFAFLOW_API_KEY")) as client:
        try:
            await client.auth.login(
                os.environ.get("MFAFLOW_EMAIL", "user@example.com"),
                os.environ.get("MFAFLOW_PASSWORD", PASSWORD),
            )
            account = MFAAccount(client.mfa)
            status = await account.status()
            logger.info("Remote MFA enabled: %s", status.enabled)

            if MFAMethod.TOTP not in status.available_methods:
                wizard = account.enrollment_wizard()
                wizard.open()
                wizard.select_method(MFAMethod.TOTP)
                if await wizard.start_setup():
                    logger.info("Manual entry key: %s", wizard.setup_data.secret)
                else:
                    logger.error("Setup failed: %s", wizard.session.error_message)
                wizard.cancel()

        except MFAFlowError as e:
            logger.exception("Remote example failed: %s", e.message)


async def main() -> None:
    """Execute main example function."""
    await local_demo()

    base_url = os.environ.get("MFAFLOW_BASE_URL")
    if base_url:
        await remote_demo(base_url)


if __name__ == "__main__":
    asyncio.run(main())
