from __future__ import annotations

from faultline.results import Failure, Result, Success

__all__ = ["Failure", "Result", "Success"]
