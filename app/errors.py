# app/errors.py
import json
from typing import Any


class ScanWorkerError(Exception):
    """Base class for every error the scan worker raises on purpose."""


class ConfigurationError(ScanWorkerError):
    pass


class NotFoundError(ScanWorkerError):
    pass


class AuthRefreshError(ScanWorkerError):
    def __init__(self, status: int, body: Any):
        self.status = status
        self.body = body
        super().__init__(f"Refresh token failed: {status} {json.dumps(body, default=str)}")


class MarketplaceError(ScanWorkerError):
    def __init__(self, status: int, payload: Any):
        self.status = status
        self.payload = payload
        super().__init__(f"ML {status}")


class PersistenceError(ScanWorkerError):
    pass


class UnexpectedError(ScanWorkerError):
    pass
