from typing import Any, Callable, List, NamedTuple, Optional

from memeverse_deployment.artifacts import ArtifactNotFound, InvalidArtifact
from memeverse_deployment.config import InvalidEnvironmentValue, MissingEnvironmentValue
from memeverse_deployment.configure import (
    ConfigurationError,
    PostDeployConfigurator,
    configuration_calls,
)
from memeverse_deployment.executor import DeploymentExecutor, DeploymentFailed
from memeverse_deployment.params import DeploymentSpec, InvalidDeploymentSpec
from memeverse_deployment.registry import DeploymentRecord
from memeverse_deployment.routes import InvalidRouteTable
from memeverse_deployment.verification import VerificationOutcome, VerificationRetrier

EXIT_OK = 0
EXIT_FATAL = 1

FATAL_ERRORS = (
    MissingEnvironmentValue,
    InvalidEnvironmentValue,
    InvalidDeploymentSpec,
    InvalidRouteTable,
    ArtifactNotFound,
    InvalidArtifact,
    FileNotFoundError,
    DeploymentFailed,
    ConfigurationError,
)


class TaskResult(NamedTuple):
    record: DeploymentRecord
    verification: Optional[VerificationOutcome]
    receipts: List[Any]


class DeploymentTask:
    """
    One deterministic deployment: deploy and record, verify with retries,
    then apply the post-deployment configuration calls.
    """

    def __init__(
        self,
        spec: DeploymentSpec,
        executor: DeploymentExecutor,
        retrier: Optional[VerificationRetrier],
        configurator: PostDeployConfigurator,
        contract_at: Callable[[DeploymentRecord], Any],
        verify: bool = True,
    ):
        self.spec = spec
        self.executor = executor
        self.retrier = retrier
        self.configurator = configurator
        self.contract_at = contract_at
        self.verify = verify and retrier is not None

    def run(self) -> TaskResult:
        record = self.executor.execute(self.spec)

        verification = None
        if self.verify:
            verification = self.retrier.verify(
                contract_name=record.name,
                address=record.address,
                constructor_args=self.spec.constructor_args,
                network=self.executor.network,
                max_attempts=self.spec.max_verification_attempts,
            )

        receipts = list()
        if self.spec.admin_calls:
            calls = configuration_calls(self.spec.admin_calls, record.abi)
            contract = self.contract_at(record)
            receipts = self.configurator.configure(contract, calls)

        return TaskResult(record=record, verification=verification, receipts=receipts)


def run_task(prepare: Callable[[], DeploymentTask]) -> int:
    """
    Prepares and runs a task, returning the process exit code.

    Fatal errors (including those raised while preparing, before any chain
    interaction) exit non-zero. Exhausted verification does not.
    """
    try:
        task = prepare()
        result = task.run()
    except FATAL_ERRORS as e:
        print(f"\n(!) Fatal: {e}")
        return EXIT_FATAL

    print(f"\n(i) {result.record.name} deployed at {result.record.address}")
    if result.verification is VerificationOutcome.EXHAUSTED:
        print("(!) Source verification did not succeed; retry with scripts/verify.py")
    return EXIT_OK
