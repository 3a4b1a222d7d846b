from .errors import NotHost


def is_host(host_id, requester_id) -> bool:
    """Identity keys are compared as strings so ``7`` and ``'7'`` match."""
    if host_id is None or requester_id is None:
        return False
    return str(host_id) == str(requester_id)


def authorize(host_id, requester_id) -> None:
    if not is_host(host_id, requester_id):
        raise NotHost()
