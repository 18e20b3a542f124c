from .context import RelayContext, get_relay_context


def get_context() -> RelayContext:
    """FastAPI dependency returning the process-wide RelayContext."""
    return get_relay_context()
