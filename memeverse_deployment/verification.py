"""
Best-effort source verification on block explorers.

Verification is free and idempotent, unlike the deployment it follows, so it
is retried up to a bound. An exhausted verification never undoes or fails the
deployment; it is only reported.
"""

import threading
import time
from enum import Enum
from typing import Any, Callable, List, NamedTuple, Optional, Sequence

from ape import networks

from memeverse_deployment.constants import (
    ALREADY_VERIFIED_MESSAGES,
    DEFAULT_MAX_VERIFICATION_ATTEMPTS,
)


class VerificationOutcome(Enum):
    VERIFIED = "verified"
    EXHAUSTED = "exhausted"


class AttemptOutcome(Enum):
    VERIFIED = "verified"
    ALREADY_VERIFIED = "already verified"
    FAILED = "failed"


class VerificationAttempt(NamedTuple):
    attempt_number: int
    outcome: AttemptOutcome
    error: Optional[BaseException] = None


VERIFICATION_THREAD_NAME = "explorer-verification"


class VerificationTimeout(Exception):
    pass


def is_already_verified(error: BaseException) -> bool:
    message = str(error).lower()
    return any(fragment in message for fragment in ALREADY_VERIFIED_MESSAGES)


def _call_with_timeout(fn: Callable, timeout: Optional[float], *args) -> Any:
    if timeout is None:
        return fn(*args)

    outcome = dict()

    def _run():
        try:
            outcome["result"] = fn(*args)
        except Exception as e:
            outcome["error"] = e

    # a daemon thread never holds up interpreter exit once abandoned
    worker = threading.Thread(target=_run, name=VERIFICATION_THREAD_NAME, daemon=True)
    worker.start()
    worker.join(timeout)
    if worker.is_alive():
        raise VerificationTimeout(f"verification call timed out after {timeout}s")
    if "error" in outcome:
        raise outcome["error"]
    return outcome.get("result")


class ExplorerVerifier:
    """Publishes contract sources through the explorer plugin of the connected network."""

    def verify_source(self, address: str, constructor_args: Sequence[Any]) -> None:
        explorer = networks.provider.network.explorer
        if explorer is None:
            raise ValueError(
                f"No explorer plugin configured for {networks.provider.network.name}; "
                f"is ape-etherscan installed?"
            )
        explorer.publish_contract(address)


class VerificationRetrier:
    def __init__(
        self,
        verifier,
        max_attempts: int = DEFAULT_MAX_VERIFICATION_ATTEMPTS,
        backoff: float = 0,
        timeout: Optional[float] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.verifier = verifier
        self.max_attempts = max_attempts
        self.backoff = backoff
        self.timeout = timeout
        self._sleep = sleep

    def _attempt(self, attempt_number: int, address: str, constructor_args) -> VerificationAttempt:
        try:
            _call_with_timeout(
                self.verifier.verify_source, self.timeout, address, list(constructor_args)
            )
        except Exception as e:
            if is_already_verified(e):
                return VerificationAttempt(attempt_number, AttemptOutcome.ALREADY_VERIFIED, e)
            return VerificationAttempt(attempt_number, AttemptOutcome.FAILED, e)
        return VerificationAttempt(attempt_number, AttemptOutcome.VERIFIED)

    def verify(
        self,
        contract_name: str,
        address: str,
        constructor_args: Sequence[Any],
        network: str,
        max_attempts: Optional[int] = None,
    ) -> VerificationOutcome:
        max_attempts = self.max_attempts if max_attempts is None else max_attempts
        if max_attempts < 1:
            raise ValueError(f"max_attempts must be at least 1, got {max_attempts}")

        attempts: List[VerificationAttempt] = list()
        for attempt_number in range(1, max_attempts + 1):
            if attempts and self.backoff:
                self._sleep(self.backoff)
            print(
                f"Verifying contract {contract_name} on {network}, address: {address} "
                f"(attempt {attempt_number}/{max_attempts})"
            )
            attempt = self._attempt(attempt_number, address, constructor_args)
            attempts.append(attempt)

            if attempt.outcome is AttemptOutcome.VERIFIED:
                print(f"Contract: {contract_name} on {network} verified!, address: {address}")
                return VerificationOutcome.VERIFIED
            if attempt.outcome is AttemptOutcome.ALREADY_VERIFIED:
                print(
                    f"Contract: {contract_name} on {network} already verified, address: {address}"
                )
                return VerificationOutcome.VERIFIED
            print(
                f"(!) Contract: {contract_name} on {network} verification failed!, "
                f"address: {address}: {attempt.error}"
            )

        print(
            f"(!) Verification of {contract_name} on {network} exhausted after "
            f"{len(attempts)} attempt(s); the contract remains deployed at {address}."
        )
        for attempt in attempts:
            print(f"\t#{attempt.attempt_number}: {type(attempt.error).__name__}: {attempt.error}")
        return VerificationOutcome.EXHAUSTED
