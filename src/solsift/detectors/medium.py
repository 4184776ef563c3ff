"""Medium severity detectors."""

from __future__ import annotations

from typing import TYPE_CHECKING, Iterator

from ..detection.helpers import (
    call_arguments,
    call_name,
    call_receiver,
    callee,
    descendants,
    has_call_options,
    is_low_level_call,
    is_member,
    is_statement_expression,
    text,
)
from ..detection.registry import DetectorSpec, Match
from ..models import Severity

if TYPE_CHECKING:
    from tree_sitter import Node

    from ..detection.context import AnalysisContext


# ==============================================================================
# tx-origin-usage
# ==============================================================================


def _tx_origin_usage(node: Node, ctx: AnalysisContext) -> Iterator[Match]:
    if is_member(node, "tx", "origin"):
        yield Match(node)


TX_ORIGIN_USAGE = DetectorSpec(
    id="tx-origin-usage",
    title="tx.origin used for authorization",
    severity=Severity.MEDIUM,
    interests=frozenset({"member_expression"}),
    check=_tx_origin_usage,
    description=(
        "tx.origin is the externally owned account that started the transaction. "
        "A malicious contract called by the owner passes a tx.origin check."
    ),
    fix="Use msg.sender for authorization.",
)


# ==============================================================================
# unchecked-low-level-call
# ==============================================================================


def _unchecked_low_level_call(node: Node, ctx: AnalysisContext) -> Iterator[Match]:
    if is_low_level_call(node) and is_statement_expression(node):
        yield Match(node, message=f"Return value of low-level {call_name(node)} is not checked")


UNCHECKED_LOW_LEVEL_CALL = DetectorSpec(
    id="unchecked-low-level-call",
    title="Return value of low-level call is not checked",
    severity=Severity.MEDIUM,
    interests=frozenset({"call_expression"}),
    check=_unchecked_low_level_call,
    description="Low-level calls return false instead of reverting; an ignored failure goes unnoticed.",
    fix="Capture the success flag and require it.",
)


# ==============================================================================
# deprecated-transfer
# ==============================================================================


def _deprecated_transfer(node: Node, ctx: AnalysisContext) -> Iterator[Match]:
    name = call_name(node)
    if name not in ("transfer", "send") or has_call_options(node):
        return
    receiver = call_receiver(node)
    if receiver is None or text(receiver) in ("super", "this"):
        return
    if len(call_arguments(node)) == 1:
        yield Match(node, message=f"Native {name}() forwards a fixed 2300 gas stipend")


DEPRECATED_TRANSFER = DetectorSpec(
    id="deprecated-transfer",
    title="Native transfer()/send() forwards a fixed gas stipend",
    severity=Severity.MEDIUM,
    interests=frozenset({"call_expression"}),
    check=_deprecated_transfer,
    description="transfer() and send() forward 2300 gas, which breaks for smart-contract wallets and after gas repricings.",
    fix="Use call{value: amount}(\"\") and check the result.",
)


# ==============================================================================
# unsafe-erc20-operations
# ==============================================================================

_ERC20_ARITY = {"transfer": 2, "transferFrom": 3, "approve": 2}


def _unsafe_erc20_operations(node: Node, ctx: AnalysisContext) -> Iterator[Match]:
    name = call_name(node)
    arity = _ERC20_ARITY.get(name)
    if arity is None or len(call_arguments(node)) != arity:
        return
    receiver = call_receiver(node)
    if receiver is None or text(receiver) in ("super", "this"):
        return
    yield Match(node, message=f"Unsafe ERC20 {name}(); return value may be missing or false")


UNSAFE_ERC20_OPERATIONS = DetectorSpec(
    id="unsafe-erc20-operations",
    title="Unsafe ERC20 operation",
    severity=Severity.MEDIUM,
    interests=frozenset({"call_expression"}),
    check=_unsafe_erc20_operations,
    description="Tokens such as USDT do not return a bool, and others return false instead of reverting.",
    fix="Use OpenZeppelin SafeERC20 (safeTransfer, safeTransferFrom, forceApprove).",
)


# ==============================================================================
# fee-on-transfer
# ==============================================================================


def _fee_on_transfer(node: Node, ctx: AnalysisContext) -> Iterator[Match]:
    if call_name(node) not in ("transferFrom", "safeTransferFrom"):
        return
    args = call_arguments(node)
    if len(args) < 3 or "".join(text(args[1]).split()) != "address(this)":
        return
    function = ctx.function_node
    scope = function if function is not None else node
    if any(call_name(call) == "balanceOf" for call in descendants(scope, ("call_expression",))):
        return
    yield Match(node)


FEE_ON_TRANSFER = DetectorSpec(
    id="fee-on-transfer",
    title="Received amount assumed equal to the transferred amount",
    severity=Severity.MEDIUM,
    interests=frozenset({"call_expression"}),
    check=_fee_on_transfer,
    description="Fee-on-transfer tokens deliver less than the requested amount; accounting on the nominal amount over-credits.",
    fix="Measure balanceOf(address(this)) before and after the transfer.",
    feature="uses_fot_tokens",
)


# ==============================================================================
# block-number-l2
# ==============================================================================


def _block_number_l2(node: Node, ctx: AnalysisContext) -> Iterator[Match]:
    if is_member(node, "block", "number"):
        yield Match(node)


BLOCK_NUMBER_L2 = DetectorSpec(
    id="block-number-l2",
    title="block.number is unreliable on L2",
    severity=Severity.MEDIUM,
    interests=frozenset({"member_expression"}),
    check=_block_number_l2,
    description="On rollups block.number may return the L1 block or a sequencer-specific value with irregular spacing.",
    fix="Measure time with block.timestamp.",
    feature="uses_l2",
)


# ==============================================================================
# l2-sequencer-check
# ==============================================================================


def _l2_sequencer_check(node: Node, ctx: AnalysisContext) -> Iterator[Match]:
    if call_name(node) == "latestRoundData" and b"sequencer" not in ctx.file.source.lower():
        yield Match(node)


L2_SEQUENCER_CHECK = DetectorSpec(
    id="l2-sequencer-check",
    title="Chainlink price used without an L2 sequencer uptime check",
    severity=Severity.MEDIUM,
    interests=frozenset({"call_expression"}),
    check=_l2_sequencer_check,
    description="While the L2 sequencer is down, Chainlink feeds go stale but still answer.",
    fix="Query the sequencer uptime feed and enforce a grace period.",
    feature="uses_l2",
)


# ==============================================================================
# deprecated-chainlink-function
# ==============================================================================

_DEPRECATED_FEED_CALLS = frozenset(
    {"latestAnswer", "latestRound", "latestTimestamp", "getAnswer", "getTimestamp"}
)


def _deprecated_chainlink_function(node: Node, ctx: AnalysisContext) -> Iterator[Match]:
    name = call_name(node)
    if name in _DEPRECATED_FEED_CALLS and call_receiver(node) is not None:
        yield Match(node, message=f"Deprecated Chainlink function {name}()")


DEPRECATED_CHAINLINK_FUNCTION = DetectorSpec(
    id="deprecated-chainlink-function",
    title="Deprecated Chainlink function",
    severity=Severity.MEDIUM,
    interests=frozenset({"call_expression"}),
    check=_deprecated_chainlink_function,
    description="These aggregator functions are deprecated and may return stale or zero values without reverting.",
    fix="Use latestRoundData() and validate its result.",
)


# ==============================================================================
# centralization-risk
# ==============================================================================

_PRIVILEGED_MODIFIERS = frozenset(
    {
        "onlyOwner",
        "onlyAdmin",
        "onlyRole",
        "onlyGovernance",
        "onlyGov",
        "onlyOperator",
        "onlyAuthorized",
        "onlyMinter",
        "onlyManager",
        "auth",
        "requiresAuth",
    }
)


def _centralization_risk(node: Node, ctx: AnalysisContext) -> Iterator[Match]:
    for child in node.named_children:
        if child.type != "modifier_invocation" or not child.named_children:
            continue
        modifier = text(child.named_children[0])
        if modifier in _PRIVILEGED_MODIFIERS:
            name = node.child_by_field_name("name")
            yield Match(name if name is not None else node, message=f"Privileged function guarded by {modifier}")
            return


CENTRALIZATION_RISK = DetectorSpec(
    id="centralization-risk",
    title="Privileged function",
    severity=Severity.MEDIUM,
    interests=frozenset({"function_definition"}),
    check=_centralization_risk,
    description="Functions restricted to a privileged role are a single point of failure if the key is lost or compromised.",
    fix="Document the trust assumptions and put privileged roles behind a multisig or timelock.",
)


# ==============================================================================
# unsafe-mint
# ==============================================================================


def _unsafe_mint(node: Node, ctx: AnalysisContext) -> Iterator[Match]:
    function = callee(node)
    if function is None or function.type != "identifier" or text(function) != "_mint":
        return
    if any("ERC721" in decl.name for decl in ctx.ancestors()):
        yield Match(node)


UNSAFE_MINT = DetectorSpec(
    id="unsafe-mint",
    title="ERC721 _mint() does not check the receiver",
    severity=Severity.MEDIUM,
    interests=frozenset({"call_expression"}),
    check=_unsafe_mint,
    description="_mint() can send a token to a contract that cannot handle ERC721 tokens, locking it forever.",
    fix="Use _safeMint().",
    requires_linearization=True,
    feature="uses_nft",
)


DETECTORS = (
    TX_ORIGIN_USAGE,
    UNCHECKED_LOW_LEVEL_CALL,
    DEPRECATED_TRANSFER,
    UNSAFE_ERC20_OPERATIONS,
    FEE_ON_TRANSFER,
    BLOCK_NUMBER_L2,
    L2_SEQUENCER_CHECK,
    DEPRECATED_CHAINLINK_FUNCTION,
    CENTRALIZATION_RISK,
    UNSAFE_MINT,
)
