from typing import Any, Awaitable, Callable, Protocol


class RetryPort(Protocol):
    """Retry with backoff for idempotent async steps.

    Only steps that can safely run twice go through here (e.g. uploading the
    source image); job-creating requests and status polls never do.
    """

    async def execute(self, func: Callable[..., Awaitable[Any]], *args, **kwargs) -> Any:  # pragma: no cover - protocol
        """Execute an async callable with retry semantics.

        Supported kw overrides (optional): attempts, wait_initial, wait_max,
        exception_types. Propagates the last exception once attempts run out.
        """
        ...
