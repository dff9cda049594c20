from typing import Any


def envelope(data: Any = None, message: str = "Success", status_code: int = 200) -> dict:
    """Standard response body: {status_code, message, data}."""
    return {
        "status_code": status_code,
        "message": message,
        "data": data,
    }
