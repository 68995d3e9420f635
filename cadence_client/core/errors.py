class ClientError(Exception):
    """사용자에게 그대로 보여줄 수 있는 메시지를 가진 기본 예외"""


class RequestError(ClientError):
    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class AuthorizationError(ClientError):
    """signed-url 응답에 object_key / signed_put_url 이 빠진 경우"""


class TransferError(ClientError):
    def __init__(self, message: str, status_code: int | None = None, body: str | None = None):
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class PollTimeout(ClientError):
    def __init__(self, timeout_ms: int, calls: int):
        super().__init__(f"Timed out waiting for job after {timeout_ms / 1000:.0f}s ({calls} checks)")
        self.timeout_ms = timeout_ms
        self.calls = calls


class FetchError(ClientError):
    def __init__(self, status_code: int | None = None, message: str | None = None):
        super().__init__(message or f"Failed to fetch audio ({status_code})")
        self.status_code = status_code


class Superseded(Exception):
    """뷰가 언마운트되었거나 다른 대상으로 넘어가 결과를 버려야 하는 경우 (사용자에게 노출하지 않음)"""
