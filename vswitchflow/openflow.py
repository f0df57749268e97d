"""Flow management through the Open vSwitch OpenFlow control program."""

from __future__ import annotations

from collections.abc import Callable, Iterable, Iterator, Sequence
from typing import Protocol as TypingProtocol

from .common import PortAction
from .matchflow import MatchFlow

__all__ = [
    "NotCommittedError",
    "TransactionDiscardedError",
    "FlowTransaction",
    "OpenFlowService",
    "parse_each",
    "parse_each_line",
]

_OFCTL = "ovs-ofctl"
_DIR_ADD = "add"
_DIR_DELETE = "delete"


class TextMarshaler(TypingProtocol):
    """Anything that renders itself to flow text."""

    def marshal_text(self) -> str: ...


Runner = Callable[..., bytes]
"""Runs ``command`` with ``*args`` and returns its output."""

PipeRunner = Callable[..., bytes]
"""Runs ``command`` with ``*args``, feeding ``stdin`` bytes, and returns its output."""


class NotCommittedError(RuntimeError):
    """A flow bundle transaction finished without being committed."""

    def __init__(self) -> None:
        super().__init__("flow bundle not committed, discarding flows")


class TransactionDiscardedError(RuntimeError):
    """A flow bundle transaction was discarded because of an earlier error."""


class FlowTransaction:
    """Collects flow additions and deletions for one atomic flow bundle."""

    def __init__(self) -> None:
        self.flows: list[tuple[str, str]] = []
        self.committed = False
        self.error: Exception | None = None

    def add(self, *args: TextMarshaler) -> None:
        """Queue flows for addition; an invalid flow is reported by ``commit``."""
        self._push(_DIR_ADD, args)

    def delete(self, *args: MatchFlow) -> None:
        """Queue match flows for deletion; an invalid one is reported by ``commit``."""
        self._push(_DIR_DELETE, args)

    def _push(self, directive: str, flows: Iterable[TextMarshaler]) -> None:
        if self.error is not None:
            return
        for flow in flows:
            try:
                text = flow.marshal_text()
            except Exception as exc:  # surfaced later by commit()
                self.error = exc
                return
            self.flows.append((directive, text))

    def commit(self) -> None:
        """Finalise the transaction, raising any error met while queueing flows."""
        if self.error is not None:
            raise self.error
        self.committed = True

    def discard(self, err: BaseException | str) -> None:
        """Drop every queued flow and raise an error wrapping ``err``."""
        self.flows = []
        raise TransactionDiscardedError(f"discarding add flow transaction: {err}") from (
            err if isinstance(err, BaseException) else None
        )

    def bundle_text(self) -> bytes:
        """Return the queued directives in flow bundle file syntax."""
        return "".join(f"{directive} {flow}\n" for directive, flow in self.flows).encode()


class OpenFlowService:
    """Issues OpenFlow commands to bridges through injected command runners.

    ``run`` is called as ``run(command, *args)``; ``pipe`` as
    ``pipe(stdin, command, *args)``.  ``flags`` are placed after the
    subcommand of every request.
    """

    def __init__(
        self,
        run: Runner,
        pipe: PipeRunner | None = None,
        flags: Sequence[str] = (),
    ) -> None:
        self._run = run
        self._pipe = pipe
        self.flags = list(flags)

    def _exec(self, *args: str) -> bytes:
        return self._run(_OFCTL, *args)

    def add_flow(self, bridge: str, flow: TextMarshaler) -> None:
        """Add a flow to ``bridge``."""
        text = flow.marshal_text()
        self._exec("add-flow", *self.flags, bridge, text)

    def add_flow_bundle(self, bridge: str, fn: Callable[[FlowTransaction], object]) -> None:
        """Atomically add and delete flows on ``bridge`` through a transaction.

        ``fn`` receives a ``FlowTransaction`` and must call ``commit`` on it;
        any exception it raises is propagated and nothing is applied.
        """
        tx = FlowTransaction()
        fn(tx)
        if not tx.committed:
            raise NotCommittedError()
        if self._pipe is None:
            raise RuntimeError("no pipe runner configured for flow bundles")
        self._pipe(tx.bundle_text(), _OFCTL, "--bundle", "add-flow", *self.flags, bridge, "-")

    def del_flows(self, bridge: str, flow: MatchFlow | None = None) -> None:
        """Delete flows matching ``flow`` from ``bridge``, or every flow if it is None."""
        args = ["del-flows", *self.flags, bridge]
        if flow is not None:
            args.append(flow.marshal_text())
        self._exec(*args)

    def mod_port(self, bridge: str, port: str, action: PortAction | str) -> None:
        """Change a characteristic of ``port`` on ``bridge``."""
        self._exec("mod-port", *self.flags, bridge, port, str(action))


def _unexpected_eof() -> EOFError:
    return EOFError("unexpected EOF")


def _scan_lines(data: bytes) -> list[bytes]:
    if not data:
        return []
    lines = data.split(b"\n")
    if lines[-1] == b"":
        lines.pop()
    return [line[:-1] if line.endswith(b"\r") else line for line in lines]


def _next_line(lines: Iterator[bytes]) -> bytes:
    line = next(lines, None)
    if line is None:
        raise _unexpected_eof()
    return line


def parse_each_line(data: bytes, prefix: bytes) -> list[bytes]:
    """Return the lines after a first line that must contain ``prefix``."""
    lines = _scan_lines(data)
    if not lines or prefix not in lines[0]:
        raise _unexpected_eof()
    return lines[1:]


def parse_each(data: bytes, prefix: bytes) -> list[bytes]:
    """Return multi-line records following a first line starting with ``prefix``.

    Each record joins two lines.  With an OpenFlow 1.x banner a third
    line is skipped per record, and two more when custom statistics
    are present.
    """
    lines = iter(_scan_lines(data))
    first = next(lines, None)
    if first is None or not first.startswith(prefix):
        raise _unexpected_eof()

    has_duration = b"(OF1." in first
    has_custom_stats = b"CUSTOM" in data

    records = []
    for line in lines:
        record = line + _next_line(lines)
        if has_duration:
            _next_line(lines)
            if has_custom_stats:
                _next_line(lines)
                _next_line(lines)
        records.append(record)
    return records