"""Context scoped switches for relaxing or tightening TZif decoding."""

from collections.abc import Generator
import contextlib
import contextvars


_strict_footer = contextvars.ContextVar("strict_footer", default=False)


@contextlib.contextmanager
def enable_strict_footer() -> Generator[None]:
    """Context manager that makes an invalid TZ string footer fatal."""
    token = _strict_footer.set(True)
    try:
        yield
    finally:
        _strict_footer.reset(token)


def is_strict_footer_enabled() -> bool:
    """Check if an invalid TZ string footer should raise."""
    return _strict_footer.get()
