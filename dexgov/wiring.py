from typing import Any, Callable, Iterable, List, NamedTuple, Optional, Sequence, Tuple

from ape.exceptions import ContractLogicError
from eth_utils import to_checksum_address

from dexgov.chain import TransactionReceipt
from dexgov.context import PipelineContext
from dexgov.exceptions import WiringFailed
from dexgov.variables import referenced_contracts, resolve_param


class WiringAction(NamedTuple):
    """
    A post-deployment configuration call.

    `guard_check` reads on-chain state and returns True when the effect is already
    in place; `apply` is never invoked in that case.
    """

    description: str
    guard_check: Callable[[PipelineContext], bool]
    apply: Callable[[PipelineContext], TransactionReceipt]
    references: Tuple[str, ...] = tuple()


class WiringOutcome(NamedTuple):
    description: str
    applied: bool
    receipt: Optional[TransactionReceipt] = None


class WiringExecutor:
    """
    Runs wiring actions in declared order.

    The first rejected action aborts the sequence; actions applied before it are
    left in place, so the whole sequence can be re-run once the cause is fixed.
    """

    def __init__(self, actions: Iterable[WiringAction]):
        self.actions = list(actions)

    def run(self, context: PipelineContext) -> List[WiringOutcome]:
        # every referenced contract must be resolvable before anything is applied
        for action in self.actions:
            for name in action.references:
                context.address_of(name)

        outcomes = list()
        for action in self.actions:
            if action.guard_check(context):
                print(f"(i) Already wired: {action.description}")
                outcomes.append(WiringOutcome(description=action.description, applied=False))
                continue

            print(f"\nWiring: {action.description}")
            try:
                receipt = action.apply(context)
            except ContractLogicError as e:
                raise WiringFailed(action=action, cause=e) from e
            outcomes.append(
                WiringOutcome(description=action.description, applied=True, receipt=receipt)
            )
        return outcomes


def _same_address(a: Any, b: Any) -> bool:
    return to_checksum_address(a) == to_checksum_address(b)


def _is_set(value: Any) -> bool:
    """Returns True if a getter value differs from its storage default."""
    if value is None or value is False:
        return False
    if isinstance(value, (bytes, bytearray)):
        return any(value)
    if isinstance(value, str):
        if value.startswith("0x"):
            return int(value, 16) != 0
        return value != ""
    return value != 0


def _references(contract: str, *values: Any) -> Tuple[str, ...]:
    names = [contract]
    for name in referenced_contracts(list(values)):
        if name not in names:
            names.append(name)
    return tuple(names)


def _role_id(context: PipelineContext, contract: str, role: str) -> bytes:
    return context.client.call(context.address_of(contract), f"{role}()")


def grant_role(contract: str, role: str, account: Any) -> WiringAction:
    """Grants `role` (the name of the contract's role getter) to `account`."""

    def guard_check(context: PipelineContext) -> bool:
        return context.client.call(
            context.address_of(contract),
            "hasRole(bytes32,address)",
            [_role_id(context, contract, role), resolve_param(account, context)],
        )

    def apply(context: PipelineContext) -> TransactionReceipt:
        return context.client.send(
            context.address_of(contract),
            "grantRole(bytes32,address)",
            [_role_id(context, contract, role), resolve_param(account, context)],
            confirmations=context.confirmations,
        )

    return WiringAction(
        description=f"grant {role} on {contract} to {account}",
        guard_check=guard_check,
        apply=apply,
        references=_references(contract, account),
    )


def revoke_role(contract: str, role: str, account: Any) -> WiringAction:
    """Revokes `role` from `account`; one-directional once the account was the role's admin."""

    def guard_check(context: PipelineContext) -> bool:
        has_role = context.client.call(
            context.address_of(contract),
            "hasRole(bytes32,address)",
            [_role_id(context, contract, role), resolve_param(account, context)],
        )
        return not has_role

    def apply(context: PipelineContext) -> TransactionReceipt:
        return context.client.send(
            context.address_of(contract),
            "revokeRole(bytes32,address)",
            [_role_id(context, contract, role), resolve_param(account, context)],
            confirmations=context.confirmations,
        )

    return WiringAction(
        description=f"revoke {role} on {contract} from {account}",
        guard_check=guard_check,
        apply=apply,
        references=_references(contract, account),
    )


def transfer_ownership(contract: str, new_owner: Any) -> WiringAction:
    def guard_check(context: PipelineContext) -> bool:
        owner = context.client.call(context.address_of(contract), "owner()")
        return _same_address(owner, resolve_param(new_owner, context))

    def apply(context: PipelineContext) -> TransactionReceipt:
        return context.client.send(
            context.address_of(contract),
            "transferOwnership(address)",
            [resolve_param(new_owner, context)],
            confirmations=context.confirmations,
        )

    return WiringAction(
        description=f"transfer ownership of {contract} to {new_owner}",
        guard_check=guard_check,
        apply=apply,
        references=_references(contract, new_owner),
    )


def initialize(
    contract: str, args: Sequence[Any], guard: str, function: str = "initialize"
) -> WiringAction:
    """
    Calls a single-use initializer. `guard` names a getter which reads back a
    value the initializer sets; a non-default value means it already ran.
    """

    def guard_check(context: PipelineContext) -> bool:
        return _is_set(context.client.call(context.address_of(contract), guard))

    def apply(context: PipelineContext) -> TransactionReceipt:
        return context.client.send(
            context.address_of(contract),
            function,
            resolve_param(list(args), context),
            confirmations=context.confirmations,
        )

    pretty_args = ", ".join(str(arg) for arg in args)
    return WiringAction(
        description=f"{function}({pretty_args}) on {contract}",
        guard_check=guard_check,
        apply=apply,
        references=_references(contract, *args),
    )


def delegate(contract: str, delegatee: Any) -> WiringAction:
    """Delegates the deployer's voting power on a votes token to `delegatee`."""

    def guard_check(context: PipelineContext) -> bool:
        current = context.client.call(
            context.address_of(contract), "delegates(address)", [context.deployer]
        )
        return _same_address(current, resolve_param(delegatee, context))

    def apply(context: PipelineContext) -> TransactionReceipt:
        return context.client.send(
            context.address_of(contract),
            "delegate(address)",
            [resolve_param(delegatee, context)],
            confirmations=context.confirmations,
        )

    return WiringAction(
        description=f"delegate votes of {contract} to {delegatee}",
        guard_check=guard_check,
        apply=apply,
        references=_references(contract, delegatee),
    )
