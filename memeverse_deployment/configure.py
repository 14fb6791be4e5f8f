from typing import Any, List, Sequence, Tuple

from memeverse_deployment.params import AdminCall, canonical_type, coerce_value


class ConfigurationError(Exception):
    """
    Raised when a post-deployment administrative call fails.

    Earlier calls are not rolled back; the contract stays deployed but only
    partially configured. The operator resumes from `failed_call`.
    """

    def __init__(
        self,
        address: str,
        index: int,
        failed_call: AdminCall,
        completed: Sequence[AdminCall],
        remaining: Sequence[AdminCall],
    ):
        self.address = address
        self.index = index
        self.failed_call = failed_call
        self.completed = tuple(completed)
        self.remaining = tuple(remaining)
        super().__init__(
            f"Configuration call #{index} {failed_call} on {address} failed "
            f"after {len(self.completed)} successful call(s)"
        )


def coerce_admin_call(call: AdminCall, abi: List[dict]) -> AdminCall:
    """Converts the arguments of `call` to the types of the matching ABI method."""
    candidates = [
        entry
        for entry in abi
        if entry.get("type") == "function"
        and entry.get("name") == call.method
        and len(entry.get("inputs", [])) == len(call.args)
    ]
    if len(candidates) != 1:
        return call  # unknown or overloaded; left to the transactor's validation
    types = [canonical_type(i) for i in candidates[0]["inputs"]]
    args = tuple(coerce_value(t, a) for t, a in zip(types, call.args))
    return AdminCall(method=call.method, args=args)


class PostDeployConfigurator:
    """Issues administrative calls against a freshly deployed contract, strictly in order."""

    def __init__(self, transactor):
        self.transactor = transactor

    def configure(self, contract, operations: Sequence[AdminCall]) -> List[Any]:
        operations = tuple(operations)
        if not operations:
            print(f"(i) No configuration calls for {contract.address}")
            return list()

        receipts = list()
        for index, call in enumerate(operations, start=1):
            print(f"(i) Configuration call {index}/{len(operations)}: {call}")
            try:
                method = getattr(contract, call.method)
                receipt = self.transactor.transact(method, *call.args)
            except Exception as e:
                completed, remaining = operations[: index - 1], operations[index:]
                error = ConfigurationError(
                    address=contract.address,
                    index=index,
                    failed_call=call,
                    completed=completed,
                    remaining=remaining,
                )
                print(f"(!) {error}: {e}")
                print("(!) Calls still to be issued manually:")
                for pending in (call, *remaining):
                    print(f"\t{pending}")
                raise error from e
            receipts.append(receipt)
        return receipts


def configuration_calls(calls: Sequence[AdminCall], abi: List[dict]) -> Tuple[AdminCall, ...]:
    return tuple(coerce_admin_call(call, abi) for call in calls)
