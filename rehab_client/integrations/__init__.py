"""
Rehab Platform SDK Framework Integrations

Registers one SDK client per web application and renders SDK errors as JSON
failure envelopes. Import the framework module you need:

    from rehab_client.integrations.fastapi import RehabFastAPI, get_rehab_client
    from rehab_client.integrations.flask import RehabFlask, get_rehab_client
"""

from typing import Any, Dict

from ..errors import ErrorKind, RehabError

# Status codes for errors that did not come from an HTTP response
_LOCAL_ERROR_STATUS = {
    ErrorKind.NETWORK: 502,
    ErrorKind.UNKNOWN: 502,
    ErrorKind.CANCELLED: 499,
    ErrorKind.VALIDATION: 400,
    ErrorKind.CONFIGURATION: 500,
}


def error_status(error: RehabError) -> int:
    """HTTP status to answer with when ``error`` escapes a request handler."""
    if 400 <= error.status_code < 600:
        return error.status_code
    return _LOCAL_ERROR_STATUS.get(error.kind, 500)


def error_payload(error: RehabError) -> Dict[str, Any]:
    """Failure envelope body for ``error``."""
    body = error.info.to_dict()
    body["kind"] = error.kind.value
    if error.request_id:
        body["requestId"] = error.request_id
    return {"success": False, "error": body, "hasMore": False}


__all__ = ["error_status", "error_payload"]
