"""
异常分类 (Error Taxonomy)

服务层与仓库层只抛出这里定义的异常；`paperproxy.main` 中注册的异常处理器
在请求边界统一把它们渲染为 `{"error": ..., "details": ...}` JSON 响应。
没有局部恢复，也没有重试：任何一个异常都会终止整个请求。
"""

from typing import Any, Optional


class ProxyError(Exception):
    """Base class for every error the proxy surfaces to its callers."""

    status_code: int = 500

    def __init__(
        self,
        message: str,
        *,
        details: Optional[Any] = None,
        status_code: Optional[int] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.details = details
        if status_code is not None:
            self.status_code = status_code

    def to_content(self) -> dict:
        content: dict = {"error": self.message}
        if self.details is not None:
            content["details"] = self.details
        return content


class ClientInputError(ProxyError):
    """Invalid request parameters; raised before any upstream call."""

    status_code = 400


class UpstreamProtocolError(ProxyError):
    """EUtils answered, but with an embedded error or a missing session token."""

    status_code = 500


class UpstreamTransportError(ProxyError):
    """
    Network failure, timeout or non-2xx status talking to NCBI.

    `status_code` mirrors the upstream status when a response was received.
    """

    status_code = 500


class NotFoundError(ProxyError):
    status_code = 404
