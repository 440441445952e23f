"""Route planning: which pipeline stages a swap needs.

Stages always run in the order wrap -> transfer -> swap -> unwrap; a plan
only decides which of them are skipped.
"""

from dataclasses import dataclass

from infinitydex.chains import wrapped_symbol
from infinitydex.errors import InvalidTokens
from infinitydex.models import StepType, SwapRequest


@dataclass(frozen=True)
class RoutePlan:
    """Stages required for one swap request."""

    wrap: bool
    transfer: bool
    swap: bool
    unwrap: bool
    path: tuple[str, ...]

    @property
    def stages(self) -> list[StepType]:
        stages = []
        if self.wrap:
            stages.append(StepType.WRAP)
        if self.transfer:
            stages.append(StepType.TRANSFER)
        if self.swap:
            stages.append(StepType.SWAP)
        if self.unwrap:
            stages.append(StepType.UNWRAP)
        return stages


def plan_route(request: SwapRequest) -> RoutePlan:
    """
    Decide the stages for a request.

    - Wrap when the source is native and the asset must cross chains or the
      caller asked for a wrapped destination.
    - Transfer when source and destination chains differ.
    - Swap when the working token differs from the destination in the same
      wrapped form (``uETH`` vs ``USDC`` swaps into ``uUSDC``).
    - Unwrap when the destination is native but the working token is wrapped.

    Raises:
        InvalidTokens: source and destination are the same token
    """
    source = request.source_token
    dest = request.destination_token

    if source == dest:
        raise InvalidTokens("source and destination tokens are identical")

    cross_chain = request.is_cross_chain
    wrap = not source.is_wrapped and (cross_chain or dest.is_wrapped)
    working_wrapped = source.is_wrapped or wrap
    working = wrapped_symbol(source.symbol) if wrap else source.symbol
    target = wrapped_symbol(dest.symbol) if working_wrapped else dest.symbol
    swap = working != target
    unwrap = working_wrapped and not dest.is_wrapped

    path = [source.symbol]
    if wrap:
        path.append(working)
    if swap:
        path.append(target)
    if unwrap:
        path.append(dest.symbol)

    return RoutePlan(
        wrap=wrap,
        transfer=cross_chain,
        swap=swap,
        unwrap=unwrap,
        path=tuple(path),
    )
