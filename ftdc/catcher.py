"""Thread-safe collection of errors for continue-on-error processing."""

from __future__ import annotations

import threading
from typing import Callable, Iterable, Optional


class CollectedErrors(Exception):
    """An error that aggregates every error gathered by a :class:`Catcher`."""

    def __init__(self, errors: list[BaseException]):
        self.errors = list(errors)
        super().__init__("\n".join(str(err) for err in self.errors))


def _wrapped(err: BaseException, message: str) -> Exception:
    text = f"{message}: {err}" if message else str(err)
    wrapped = Exception(text)
    wrapped.__cause__ = err
    return wrapped


class Catcher:
    """Collects errors from many operations, ignoring ``None``."""

    def __init__(self) -> None:
        self._errors: list[BaseException] = []
        self._lock = threading.Lock()

    def add(self, err: Optional[BaseException]) -> None:
        """Record ``err`` unless it is ``None``."""
        if err is None:
            return
        if not isinstance(err, BaseException):
            raise TypeError(f"expected an exception, got {type(err).__name__}")
        with self._lock:
            self._errors.append(err)

    def add_when(self, cond: bool, err: Optional[BaseException]) -> None:
        if cond:
            self.add(err)

    def extend(self, errs: Optional[Iterable[Optional[BaseException]]]) -> None:
        """Record every error in ``errs`` that is not ``None``."""
        if not errs:
            return
        for err in errs:
            self.add(err)

    def extend_when(self, cond: bool, errs: Optional[Iterable[Optional[BaseException]]]) -> None:
        if cond:
            self.extend(errs)

    def __len__(self) -> int:
        with self._lock:
            return len(self._errors)

    def has_errors(self) -> bool:
        return len(self) > 0

    def __str__(self) -> str:
        with self._lock:
            return "\n".join(str(err) for err in self._errors)

    def resolve(self) -> Optional[CollectedErrors]:
        """Return an aggregate error, or ``None`` when nothing was collected.

        The collected errors are kept.
        """
        errors = self.errors()
        if not errors:
            return None
        return CollectedErrors(errors)

    def errors(self) -> list[BaseException]:
        """Return a copy of the collected errors."""
        with self._lock:
            return list(self._errors)

    def new(self, message: str) -> None:
        """Record a new error with ``message`` unless it is empty."""
        if message:
            self.add(Exception(message))

    def new_when(self, cond: bool, message: str) -> None:
        if cond:
            self.new(message)

    def errorf(self, form: str, *args: object) -> None:
        """Record an error formatted with ``%`` from ``form`` and ``args``."""
        if not form:
            return
        if not args:
            self.new(form)
            return
        self.add(Exception(form % args))

    def errorf_when(self, cond: bool, form: str, *args: object) -> None:
        if cond:
            self.errorf(form, *args)

    def wrap(self, err: Optional[BaseException], message: str) -> None:
        """Record ``err`` annotated with ``message``; ``None`` is ignored."""
        if err is None:
            return
        self.add(_wrapped(err, message))

    def wrapf(self, err: Optional[BaseException], form: str, *args: object) -> None:
        if err is None:
            return
        message = form % args if args else form
        self.add(_wrapped(err, message))

    def check(self, fn: Callable[[], Optional[BaseException]]) -> None:
        """Call ``fn`` and record the error it returns or raises."""
        try:
            result = fn()
        except Exception as exc:  # noqa: BLE001 - collected, not swallowed
            self.add(exc)
        else:
            self.add(result)

    def check_when(self, cond: bool, fn: Callable[[], Optional[BaseException]]) -> None:
        if cond:
            self.check(fn)