"""Client-wide configuration context."""

from __future__ import annotations

from typing import Callable, Optional

from ..models.config import CsrfSettings
from .interceptors import InterceptorRegistry

XsrfTokenProvider = Callable[[str], Optional[str]]


class ClientConfig:
    """
    Configuration shared by every request run through one executor.

    Holds the CSRF settings, the global interceptor registry and an
    optional XSRF token provider. Executors read it once per attempt and
    never modify it.

    Example:
        config = ClientConfig()
        config.csrf.csrf_token = "token123"
        config.interceptors.add_request_interceptor(add_auth)

        executor = RequestExecutor(transport, config=config)
    """

    def __init__(
        self,
        csrf: Optional[CsrfSettings] = None,
        xsrf_token_provider: Optional[XsrfTokenProvider] = None,
    ) -> None:
        self.csrf = csrf or CsrfSettings()
        self.interceptors = InterceptorRegistry()
        self.xsrf_token_provider = xsrf_token_provider

    def xsrf_token(self) -> Optional[str]:
        """Ask the provider for the token stored under the configured XSRF cookie name."""
        if not self.csrf.enable_auto_xsrf or self.xsrf_token_provider is None:
            return None
        token = self.xsrf_token_provider(self.csrf.xsrf_cookie_name)
        return token.strip() if token and token.strip() else None

    def reset(self) -> ClientConfig:
        """Restore default settings and drop every global interceptor."""
        self.csrf = CsrfSettings()
        self.interceptors.clear()
        self.xsrf_token_provider = None
        return self
