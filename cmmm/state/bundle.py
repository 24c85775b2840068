"""
Transaction bundle: an ordered list of commands executed atomically by the platform.

A bundle is built incrementally. Every argument is either an externally
supplied object, a pure value, the gas coin, or the result of an *earlier*
command in the same bundle. References to results that do not exist yet are
rejected when the command is appended, so a bundle can never hold a dangling
reference.

Algorithm Design:
- Type: append-only command list with positional result references
- Validation: O(args) per append, O(total args) for a full `validate()`
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

from ..errors import BundleError
from .canonical import canonical_json_bytes, from_b64, to_b64
from .coins import Address, ObjectId


BUNDLE_FORMAT_VERSION = 1

PureValue = Union[int, str, bool, Tuple[int, ...], Tuple[str, ...]]


@dataclass(frozen=True)
class ObjectArg:
    object_id: ObjectId


@dataclass(frozen=True)
class PureArg:
    value: PureValue


@dataclass(frozen=True)
class GasCoin:
    pass


@dataclass(frozen=True)
class Result:
    """Whole result of command ``index``."""
    index: int


@dataclass(frozen=True)
class NestedResult:
    """The ``result_index``-th value returned by command ``index``."""
    index: int
    result_index: int


Argument = Union[ObjectArg, PureArg, GasCoin, Result, NestedResult]


@dataclass(frozen=True)
class MoveCall:
    package: str
    module: str
    function: str
    type_arguments: Tuple[str, ...]
    arguments: Tuple[Argument, ...]

    @property
    def target(self) -> str:
        return f"{self.package}::{self.module}::{self.function}"


@dataclass(frozen=True)
class SplitCoins:
    coin: Argument
    amounts: Tuple[Argument, ...]


@dataclass(frozen=True)
class MergeCoins:
    destination: Argument
    sources: Tuple[Argument, ...]


Command = Union[MoveCall, SplitCoins, MergeCoins]


def _command_arguments(cmd: Command) -> Tuple[Argument, ...]:
    if isinstance(cmd, MoveCall):
        return cmd.arguments
    if isinstance(cmd, SplitCoins):
        return (cmd.coin,) + cmd.amounts
    if isinstance(cmd, MergeCoins):
        return (cmd.destination,) + cmd.sources
    raise TypeError(f"unknown command type: {type(cmd)}")


def _pure_value(value: Any) -> PureValue:
    if isinstance(value, (list, tuple)):
        items = tuple(value)
        if not all(isinstance(v, (int, str)) and not isinstance(v, bool) for v in items):
            raise TypeError("pure vectors must contain only ints or strings")
        return items
    if isinstance(value, (int, str, bool)):
        return value
    raise TypeError(f"unsupported pure value type: {type(value)}")


class TransactionBundle:
    """
    Ordered commands plus a gas budget and a sender.

    Once `seal()` is called (at hand-off to the signer) the bundle rejects
    further changes.
    """

    def __init__(self, sender: Optional[Address] = None, gas_budget: Optional[int] = None):
        self._commands: List[Command] = []
        self._sender = sender
        self._gas_budget: Optional[int] = None
        self._sealed = False
        if gas_budget is not None:
            self.set_gas_budget(gas_budget)

    # ------------------------------------------------------------------
    # Metadata
    # ------------------------------------------------------------------

    @property
    def sender(self) -> Optional[Address]:
        return self._sender

    @property
    def gas_budget(self) -> Optional[int]:
        return self._gas_budget

    @property
    def commands(self) -> Tuple[Command, ...]:
        return tuple(self._commands)

    @property
    def sealed(self) -> bool:
        return self._sealed

    def set_sender(self, sender: Address) -> None:
        self._ensure_open()
        if not isinstance(sender, str) or not sender:
            raise ValueError("sender must be a non-empty string")
        self._sender = sender

    def set_gas_budget(self, gas_budget: int) -> None:
        self._ensure_open()
        if not isinstance(gas_budget, int) or isinstance(gas_budget, bool) or gas_budget <= 0:
            raise ValueError(f"gas_budget must be a positive int: {gas_budget!r}")
        self._gas_budget = gas_budget

    def transfer_metadata(self, other: "TransactionBundle") -> None:
        """Copy sender and gas budget from ``other`` onto this bundle."""
        if other.sender is not None:
            self.set_sender(other.sender)
        if other.gas_budget is not None:
            self.set_gas_budget(other.gas_budget)

    def seal(self) -> "TransactionBundle":
        self.validate()
        self._sealed = True
        return self

    # ------------------------------------------------------------------
    # Arguments
    # ------------------------------------------------------------------

    @staticmethod
    def object(object_id: ObjectId) -> ObjectArg:
        if not isinstance(object_id, str) or not object_id:
            raise ValueError("object_id must be a non-empty string")
        return ObjectArg(object_id)

    @staticmethod
    def pure(value: Any) -> PureArg:
        return PureArg(_pure_value(value))

    @property
    def gas(self) -> GasCoin:
        return GasCoin()

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def move_call(
        self,
        *,
        package: str,
        module: str,
        function: str,
        type_arguments: Sequence[str] = (),
        arguments: Sequence[Argument] = (),
    ) -> Result:
        cmd = MoveCall(
            package=package,
            module=module,
            function=function,
            type_arguments=tuple(type_arguments),
            arguments=tuple(arguments),
        )
        return Result(self._append(cmd))

    def split_coins(self, coin: Argument, amounts: Sequence[Argument]) -> List[NestedResult]:
        if not amounts:
            raise ValueError("split_coins requires at least one amount")
        idx = self._append(SplitCoins(coin=coin, amounts=tuple(amounts)))
        return [NestedResult(idx, i) for i in range(len(amounts))]

    def merge_coins(self, destination: Argument, sources: Sequence[Argument]) -> None:
        if not sources:
            raise ValueError("merge_coins requires at least one source")
        self._append(MergeCoins(destination=destination, sources=tuple(sources)))

    def _append(self, cmd: Command) -> int:
        self._ensure_open()
        position = len(self._commands)
        for arg in _command_arguments(cmd):
            self._check_argument(arg, position)
        self._commands.append(cmd)
        return position

    def _check_argument(self, arg: Argument, position: int) -> None:
        if isinstance(arg, (ObjectArg, PureArg, GasCoin)):
            return
        if isinstance(arg, (Result, NestedResult)):
            if arg.index < 0 or arg.index >= position:
                raise BundleError(
                    f"command {position} references result {arg.index} which is not an earlier command"
                )
            if isinstance(arg, NestedResult):
                source = self._commands[arg.index]
                if isinstance(source, MergeCoins):
                    raise BundleError(f"command {arg.index} (merge) has no results")
                if isinstance(source, SplitCoins) and not (0 <= arg.result_index < len(source.amounts)):
                    raise BundleError(
                        f"split command {arg.index} has {len(source.amounts)} results, "
                        f"got result_index {arg.result_index}"
                    )
            return
        raise BundleError(f"unknown argument type: {type(arg)}")

    def _ensure_open(self) -> None:
        if self._sealed:
            raise BundleError("bundle is sealed")

    def validate(self) -> None:
        """
        Re-check every command's references against its position.

        Raises:
            BundleError: If any command references a missing or later result
        """
        for position, cmd in enumerate(self._commands):
            for arg in _command_arguments(cmd):
                self._check_argument(arg, position)

    # ------------------------------------------------------------------
    # Serialization
    # ------------------------------------------------------------------

    def kind_dict(self) -> Dict[str, Any]:
        """Commands only (no sender / budget)."""
        return {
            "version": BUNDLE_FORMAT_VERSION,
            "commands": [_command_to_dict(c) for c in self._commands],
        }

    def to_dict(self) -> Dict[str, Any]:
        d = self.kind_dict()
        d["sender"] = self._sender
        d["gas_budget"] = self._gas_budget
        return d

    def canonical_bytes(self) -> bytes:
        return canonical_json_bytes(self.to_dict())

    def to_kind_bytes(self) -> bytes:
        return canonical_json_bytes(self.kind_dict())

    def to_kind_b64(self) -> str:
        return to_b64(self.to_kind_bytes())

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TransactionBundle":
        """
        Rebuild a bundle from `to_dict()` / `kind_dict()` output.

        Raises:
            ValueError: If the structure is malformed
            BundleError: If a command references a missing result
        """
        if not isinstance(data, dict):
            raise ValueError(f"bundle must be an object, got {type(data)}")
        version = data.get("version")
        if version != BUNDLE_FORMAT_VERSION:
            raise ValueError(f"unsupported bundle version: {version!r}")
        commands = data.get("commands")
        if not isinstance(commands, list):
            raise ValueError("bundle.commands must be a list")
        bundle = cls()
        for i, raw in enumerate(commands):
            try:
                bundle._append(_command_from_dict(raw))
            except (TypeError, KeyError) as e:
                raise ValueError(f"Failed to parse command {i}: {e}") from e
        sender = data.get("sender")
        if sender is not None:
            bundle.set_sender(sender)
        gas_budget = data.get("gas_budget")
        if gas_budget is not None:
            bundle.set_gas_budget(gas_budget)
        return bundle

    @classmethod
    def from_kind_b64(cls, text: str) -> "TransactionBundle":
        raw = from_b64(text)
        try:
            data = json.loads(raw.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise ValueError(f"invalid bundle JSON: {exc}") from exc
        return cls.from_dict(data)

    def __len__(self) -> int:
        return len(self._commands)

    def __repr__(self) -> str:
        return (
            f"TransactionBundle({len(self._commands)} commands, sender={self._sender}, "
            f"gas_budget={self._gas_budget}, sealed={self._sealed})"
        )


def argument_to_dict(arg: Argument) -> Dict[str, Any]:
    if isinstance(arg, ObjectArg):
        return {"Object": arg.object_id}
    if isinstance(arg, PureArg):
        value = list(arg.value) if isinstance(arg.value, tuple) else arg.value
        return {"Pure": value}
    if isinstance(arg, GasCoin):
        return {"GasCoin": True}
    if isinstance(arg, Result):
        return {"Result": arg.index}
    if isinstance(arg, NestedResult):
        return {"NestedResult": [arg.index, arg.result_index]}
    raise TypeError(f"unknown argument type: {type(arg)}")


def _arg_from_dict(raw: Any) -> Argument:
    if not isinstance(raw, dict) or len(raw) != 1:
        raise TypeError(f"argument must be a single-key object, got {raw!r}")
    (key, value), = raw.items()
    if key == "Object":
        return TransactionBundle.object(value)
    if key == "Pure":
        return TransactionBundle.pure(value)
    if key == "GasCoin":
        return GasCoin()
    if key == "Result":
        if not isinstance(value, int) or isinstance(value, bool):
            raise TypeError("Result index must be an int")
        return Result(value)
    if key == "NestedResult":
        if not isinstance(value, list) or len(value) != 2:
            raise TypeError("NestedResult must be [index, result_index]")
        return NestedResult(int(value[0]), int(value[1]))
    raise TypeError(f"unknown argument kind: {key!r}")


def _command_to_dict(cmd: Command) -> Dict[str, Any]:
    if isinstance(cmd, MoveCall):
        return {
            "MoveCall": {
                "package": cmd.package,
                "module": cmd.module,
                "function": cmd.function,
                "type_arguments": list(cmd.type_arguments),
                "arguments": [argument_to_dict(a) for a in cmd.arguments],
            }
        }
    if isinstance(cmd, SplitCoins):
        return {"SplitCoins": {"coin": argument_to_dict(cmd.coin), "amounts": [argument_to_dict(a) for a in cmd.amounts]}}
    if isinstance(cmd, MergeCoins):
        return {
            "MergeCoins": {
                "destination": argument_to_dict(cmd.destination),
                "sources": [argument_to_dict(a) for a in cmd.sources],
            }
        }
    raise TypeError(f"unknown command type: {type(cmd)}")


def _command_from_dict(raw: Any) -> Command:
    if not isinstance(raw, dict) or len(raw) != 1:
        raise TypeError(f"command must be a single-key object, got {raw!r}")
    (key, body), = raw.items()
    if not isinstance(body, dict):
        raise TypeError(f"{key} body must be an object")
    if key == "MoveCall":
        return MoveCall(
            package=str(body["package"]),
            module=str(body["module"]),
            function=str(body["function"]),
            type_arguments=tuple(str(t) for t in body.get("type_arguments", [])),
            arguments=tuple(_arg_from_dict(a) for a in body.get("arguments", [])),
        )
    if key == "SplitCoins":
        return SplitCoins(
            coin=_arg_from_dict(body["coin"]),
            amounts=tuple(_arg_from_dict(a) for a in body["amounts"]),
        )
    if key == "MergeCoins":
        return MergeCoins(
            destination=_arg_from_dict(body["destination"]),
            sources=tuple(_arg_from_dict(a) for a in body["sources"]),
        )
    raise TypeError(f"unknown command kind: {key!r}")
