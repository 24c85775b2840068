# [TESTER] v1

from __future__ import annotations

import pytest

from cmmm.errors import BundleError
from cmmm.state.bundle import (
    GasCoin,
    MergeCoins,
    MoveCall,
    NestedResult,
    PureArg,
    Result,
    SplitCoins,
    TransactionBundle,
)
from cmmm.state.canonical import to_b64

SENDER = "0x" + "33" * 32
COIN_A = "0x" + "c1" * 32
COIN_B = "0x" + "c2" * 32


def _sample() -> TransactionBundle:
    bundle = TransactionBundle(sender=SENDER, gas_budget=1_000)
    primary = TransactionBundle.object(COIN_A)
    bundle.merge_coins(primary, [TransactionBundle.object(COIN_B)])
    coin = bundle.split_coins(primary, [TransactionBundle.pure(500)])[0]
    bundle.move_call(
        package="0x" + "aa" * 32,
        module="interface",
        function="swap_exact_in",
        type_arguments=["0xabc::af_lp::LP", "0x2::sui::SUI", "0x5::coin::COIN"],
        arguments=[TransactionBundle.object("0x" + "11" * 32), coin, TransactionBundle.pure([1, 2, 3])],
    )
    return bundle


def test_commands_are_recorded_in_order() -> None:
    bundle = _sample()
    kinds = [type(c) for c in bundle.commands]
    assert kinds == [MergeCoins, SplitCoins, MoveCall]
    assert len(bundle) == 3
    assert bundle.commands[2].arguments[1] == NestedResult(1, 0)


def test_split_coins_returns_one_reference_per_amount() -> None:
    bundle = TransactionBundle()
    refs = bundle.split_coins(bundle.gas, [TransactionBundle.pure(1), TransactionBundle.pure(2)])
    assert refs == [NestedResult(0, 0), NestedResult(0, 1)]


def test_forward_reference_is_rejected() -> None:
    bundle = TransactionBundle()
    with pytest.raises(BundleError, match="not an earlier command"):
        bundle.merge_coins(GasCoin(), [Result(0)])
    assert len(bundle) == 0


def test_nested_result_of_merge_is_rejected() -> None:
    bundle = TransactionBundle()
    bundle.merge_coins(TransactionBundle.object(COIN_A), [TransactionBundle.object(COIN_B)])
    with pytest.raises(BundleError, match="merge"):
        bundle.split_coins(NestedResult(0, 0), [TransactionBundle.pure(1)])


def test_nested_result_index_out_of_range_is_rejected() -> None:
    bundle = TransactionBundle()
    bundle.split_coins(bundle.gas, [TransactionBundle.pure(1)])
    with pytest.raises(BundleError, match="result_index"):
        bundle.merge_coins(GasCoin(), [NestedResult(0, 1)])


def test_sealed_bundle_rejects_changes() -> None:
    bundle = _sample().seal()
    assert bundle.sealed
    with pytest.raises(BundleError, match="sealed"):
        bundle.split_coins(bundle.gas, [TransactionBundle.pure(1)])
    with pytest.raises(BundleError, match="sealed"):
        bundle.set_gas_budget(5)


def test_gas_budget_must_be_positive() -> None:
    bundle = TransactionBundle()
    with pytest.raises(ValueError, match="gas_budget"):
        bundle.set_gas_budget(0)


def test_pure_values() -> None:
    assert TransactionBundle.pure(5) == PureArg(5)
    assert TransactionBundle.pure([1, 2]) == PureArg((1, 2))
    with pytest.raises(TypeError):
        TransactionBundle.pure(1.5)
    with pytest.raises(TypeError):
        TransactionBundle.pure([1, True])


def test_to_dict_shape() -> None:
    d = _sample().to_dict()
    assert d["version"] == 1
    assert d["sender"] == SENDER
    assert d["gas_budget"] == 1_000
    assert d["commands"][0] == {"MergeCoins": {"destination": {"Object": COIN_A}, "sources": [{"Object": COIN_B}]}}
    assert d["commands"][1]["SplitCoins"]["amounts"] == [{"Pure": 500}]
    assert d["commands"][2]["MoveCall"]["arguments"][1] == {"NestedResult": [1, 0]}


def test_kind_bytes_are_deterministic_and_exclude_metadata() -> None:
    a = _sample()
    b = _sample()
    b.set_sender("0x" + "44" * 32)
    assert a.to_kind_bytes() == b.to_kind_bytes()
    assert a.canonical_bytes() != b.canonical_bytes()


def test_kind_round_trip_through_base64() -> None:
    original = _sample()
    rebuilt = TransactionBundle.from_kind_b64(original.to_kind_b64())
    assert rebuilt.commands == original.commands
    assert rebuilt.sender is None
    assert rebuilt.gas_budget is None

    rebuilt.transfer_metadata(original)
    assert rebuilt.to_dict() == original.to_dict()


def test_from_dict_rejects_dangling_reference() -> None:
    data = {"version": 1, "commands": [{"MergeCoins": {"destination": {"GasCoin": True}, "sources": [{"Result": 3}]}}]}
    with pytest.raises(BundleError):
        TransactionBundle.from_dict(data)


def test_from_dict_rejects_malformed_input() -> None:
    with pytest.raises(ValueError, match="version"):
        TransactionBundle.from_dict({"version": 2, "commands": []})
    with pytest.raises(ValueError, match="Failed to parse command 0"):
        TransactionBundle.from_dict({"version": 1, "commands": [{"Publish": {}}]})
    with pytest.raises(ValueError, match="invalid bundle JSON"):
        TransactionBundle.from_kind_b64(to_b64(b"not json"))
    with pytest.raises(ValueError, match="base64"):
        TransactionBundle.from_kind_b64("***")
