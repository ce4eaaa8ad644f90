"""Tests for the enrollment wizard."""

from __future__ import annotations

import asyncio
from typing import Any

import pyotp
import pytest

from mfaflow import (
    EnrollmentStep,
    EnrollmentWizard,
    InvalidTransitionError,
    MFAMethod,
    NetworkError,
    OperationInProgressError,
    SetupFailed,
    ValidationError,
    VerificationFailed,
)
from mfaflow.memory import InMemoryCredentialStore

from .conftest import TOTP_SECRET


def make_wizard(store: Any, notifier: Any, cache: Any, **kwargs: Any) -> EnrollmentWizard:
    wizard = EnrollmentWizard(store, notifier=notifier, cache=cache, **kwargs)
    wizard.open()
    return wizard


class CountingStore(InMemoryCredentialStore):
    """Store that counts calls to the remote operations."""

    def __init__(self, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self.setup_calls = 0
        self.verify_calls = 0

    async def setup(self, method: MFAMethod, phone_number: str | None = None) -> Any:
        self.setup_calls += 1
        return await super().setup(method, phone_number)

    async def verify_setup(self, method: MFAMethod, code: str) -> Any:
        self.verify_calls += 1
        return await super().verify_setup(method, code)


async def test_totp_enrollment_scenario(store, notifier, cache) -> None:
    """Enroll TOTP end to end, keeping the backup codes before finishing."""
    closed: list[bool] = []
    wizard = make_wizard(
        store, notifier, cache, complete_delay=0, on_close=lambda: closed.append(True)
    )

    wizard.select_method(MFAMethod.TOTP)
    assert wizard.step is EnrollmentStep.SETUP

    assert await wizard.start_setup()
    assert wizard.step is EnrollmentStep.VERIFY
    assert wizard.setup_data is not None
    assert wizard.setup_data.secret == TOTP_SECRET
    assert wizard.setup_data.qr_code_url.startswith("otpauth://totp/")
    assert len(wizard.backup_codes) == 10

    wizard.enter_code(pyotp.TOTP(TOTP_SECRET).now())
    assert await wizard.submit_code()
    assert wizard.step is EnrollmentStep.BACKUP
    assert wizard.setup_data is None
    assert not wizard.can_confirm_saved

    copied = wizard.copy_backup_codes()
    assert copied.splitlines() == wizard.backup_codes
    assert wizard.can_confirm_saved

    await wizard.confirm_saved()
    assert wizard.step is EnrollmentStep.COMPLETE
    assert cache.invalidations == 1
    assert "MFA Method Added" in notifier.titles

    status = await store.get_status()
    assert status.available_methods == [MFAMethod.TOTP]
    assert status.backup_codes_count == 10

    await asyncio.sleep(0.01)
    assert wizard.step is EnrollmentStep.CHOOSE
    assert not wizard.is_open
    assert closed == [True]


async def test_confirm_saved_requires_copy_or_download(store, notifier, cache) -> None:
    wizard = make_wizard(store, notifier, cache)
    wizard.select_method(MFAMethod.TOTP)
    await wizard.start_setup()
    await wizard.submit_code(store.current_totp())

    with pytest.raises(InvalidTransitionError):
        await wizard.confirm_saved()
    assert wizard.step is EnrollmentStep.BACKUP
    assert cache.invalidations == 0


async def test_download_backup_codes_writes_file(store, notifier, cache, tmp_path) -> None:
    wizard = make_wizard(store, notifier, cache, complete_delay=60)
    wizard.select_method(MFAMethod.TOTP)
    await wizard.start_setup()
    await wizard.submit_code(store.current_totp())
    codes = wizard.backup_codes

    text = wizard.download_backup_codes(tmp_path)

    written = (tmp_path / "backup-codes.txt").read_text(encoding="utf-8")
    for code in codes:
        assert code in text
        assert code in written
    await wizard.confirm_saved()
    assert wizard.step is EnrollmentStep.COMPLETE
    assert wizard.backup_codes == []
    wizard.close()


@pytest.mark.parametrize("method", [MFAMethod.SMS, MFAMethod.EMAIL])
async def test_channel_enrollment_skips_backup_step(store, notifier, cache, method) -> None:
    wizard = make_wizard(store, notifier, cache, complete_delay=60)
    wizard.select_method(method)
    wizard.set_phone_number("+44 7123 456789")

    assert await wizard.start_setup()
    assert wizard.step is EnrollmentStep.VERIFY
    assert wizard.setup_data is None

    assert await wizard.submit_code(store.last_code(method))
    assert wizard.step is EnrollmentStep.COMPLETE
    assert cache.invalidations == 1
    assert method in (await store.get_status()).available_methods
    wizard.close()


async def test_enrolled_method_is_reported_for_every_method(notifier, cache) -> None:
    for method in MFAMethod:
        store = InMemoryCredentialStore()
        wizard = make_wizard(store, notifier, cache, complete_delay=60)
        wizard.select_method(method)
        wizard.set_phone_number("+15551234567")
        await wizard.start_setup()
        if method is MFAMethod.TOTP:
            code = store.current_totp()
        else:
            code = store.last_code(method)
        await wizard.submit_code(code)
        assert (await store.get_status()).available_methods == [method]
        wizard.close()


@pytest.mark.parametrize("phone", ["", "12345", "07123456789", "+44 71"])
async def test_invalid_phone_number_never_reaches_store(notifier, cache, phone) -> None:
    store = CountingStore()
    wizard = make_wizard(store, notifier, cache)
    wizard.select_method(MFAMethod.SMS)
    wizard.set_phone_number(phone)

    assert not await wizard.start_setup()
    assert isinstance(wizard.session.error, ValidationError)
    assert wizard.step is EnrollmentStep.SETUP
    assert wizard.session.phone_number == phone
    assert store.setup_calls == 0


@pytest.mark.parametrize("code", ["12345", "1234567", "abcdef", ""])
async def test_malformed_code_never_reaches_store(notifier, cache, code) -> None:
    store = CountingStore()
    wizard = make_wizard(store, notifier, cache)
    wizard.select_method(MFAMethod.EMAIL)
    await wizard.start_setup()

    assert not await wizard.submit_code(code)
    assert isinstance(wizard.session.error, ValidationError)
    assert wizard.step is EnrollmentStep.VERIFY
    assert store.verify_calls == 0


async def test_wrong_code_keeps_verify_step_and_code(store, notifier, cache) -> None:
    wizard = make_wizard(store, notifier, cache)
    wizard.select_method(MFAMethod.EMAIL)
    await wizard.start_setup()
    wrong = "000000"

    wizard.enter_code(wrong)
    assert not await wizard.submit_code()
    assert isinstance(wizard.session.error, VerificationFailed)
    assert wizard.session.error_message == "Invalid verification code"
    assert wizard.step is EnrollmentStep.VERIFY
    assert wizard.session.code == wrong

    assert await wizard.submit_code(store.last_code(MFAMethod.EMAIL))
    assert wizard.session.error is None


async def test_setup_rejection_keeps_setup_step(store, notifier, cache) -> None:
    wizard = make_wizard(store, notifier, cache, complete_delay=60)
    wizard.select_method(MFAMethod.EMAIL)
    await wizard.start_setup()
    await wizard.submit_code(store.last_code(MFAMethod.EMAIL))
    wizard.close()

    wizard.open()
    wizard.select_method(MFAMethod.EMAIL)
    assert not await wizard.start_setup()
    assert isinstance(wizard.session.error, SetupFailed)
    assert wizard.session.error_message == "Email authentication is already enabled"
    assert wizard.step is EnrollmentStep.SETUP


async def test_transport_failure_shows_generic_message(notifier, cache) -> None:
    class OfflineStore(InMemoryCredentialStore):
        async def setup(self, method: MFAMethod, phone_number: str | None = None) -> Any:
            raise NetworkError()

    wizard = make_wizard(OfflineStore(), notifier, cache)
    wizard.select_method(MFAMethod.TOTP)

    assert not await wizard.start_setup()
    assert wizard.step is EnrollmentStep.SETUP
    assert not wizard.session.pending
    assert "try again" in wizard.session.error_message


async def test_back_discards_pending_secret(store, notifier, cache) -> None:
    wizard = make_wizard(store, notifier, cache)
    wizard.select_method(MFAMethod.TOTP)
    await wizard.start_setup()
    wizard.enter_code("123")

    wizard.back()

    assert wizard.step is EnrollmentStep.CHOOSE
    assert wizard.session.pending_secret is None
    assert wizard.backup_codes == []
    assert wizard.session.code == ""


async def test_cancel_discards_session_without_enrolling(store, notifier, cache) -> None:
    wizard = make_wizard(store, notifier, cache)
    wizard.select_method(MFAMethod.TOTP)
    await wizard.start_setup()

    wizard.cancel()

    assert not wizard.is_open
    assert wizard.step is EnrollmentStep.CHOOSE
    assert wizard.session.selected_method is None
    assert (await store.get_status()).enabled is False
    assert cache.invalidations == 0


async def test_steps_are_guarded(store, notifier, cache) -> None:
    wizard = EnrollmentWizard(store, notifier=notifier, cache=cache)
    with pytest.raises(InvalidTransitionError):
        wizard.select_method(MFAMethod.TOTP)

    wizard.open()
    with pytest.raises(InvalidTransitionError):
        await wizard.start_setup()
    with pytest.raises(InvalidTransitionError):
        await wizard.submit_code("123456")
    with pytest.raises(InvalidTransitionError):
        wizard.copy_backup_codes()
    with pytest.raises(InvalidTransitionError):
        wizard.back()


async def test_second_submit_while_pending_is_refused(notifier, cache) -> None:
    release = asyncio.Event()

    class SlowStore(InMemoryCredentialStore):
        async def setup(self, method: MFAMethod, phone_number: str | None = None) -> Any:
            await release.wait()
            return await super().setup(method, phone_number)

    wizard = make_wizard(SlowStore(), notifier, cache)
    wizard.select_method(MFAMethod.TOTP)
    first = asyncio.create_task(wizard.start_setup())
    await asyncio.sleep(0)
    assert wizard.session.pending

    with pytest.raises(OperationInProgressError):
        await wizard.start_setup()

    release.set()
    assert await first
    assert not wizard.session.pending


async def test_response_after_close_is_dropped(notifier, cache) -> None:
    release = asyncio.Event()

    class SlowStore(InMemoryCredentialStore):
        async def setup(self, method: MFAMethod, phone_number: str | None = None) -> Any:
            await release.wait()
            return await super().setup(method, phone_number)

    wizard = make_wizard(SlowStore(), notifier, cache)
    wizard.select_method(MFAMethod.TOTP)
    pending = asyncio.create_task(wizard.start_setup())
    await asyncio.sleep(0)

    wizard.close()
    wizard.open()
    release.set()

    assert not await pending
    assert wizard.step is EnrollmentStep.CHOOSE
    assert wizard.session.pending_secret is None
