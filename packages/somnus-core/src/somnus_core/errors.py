from __future__ import annotations


class SomnusError(Exception):
    """Base exception for all somnus errors."""


# ── Config Errors ────────────────────────────────────────────────────

class ConfigError(SomnusError):
    """Invalid or missing configuration."""


# ── Backend Errors ───────────────────────────────────────────────────

class BackendError(SomnusError):
    """Error from a memory store backend."""


class BackendUnavailableError(BackendError):
    """Backend is not reachable, not installed, or not configured."""


# ── Oracle Errors ────────────────────────────────────────────────────

class OracleError(SomnusError):
    """The text-generation call failed or produced no output."""


class AnalysisParseError(OracleError, ValueError):
    """Oracle output could not be parsed as a JSON analysis."""


# ── Maintenance Errors ───────────────────────────────────────────────

class MaintenanceError(SomnusError):
    """A maintenance run cannot start or continue."""


class InvalidDateError(MaintenanceError, ValueError):
    """An explicit date argument is not in YYYY-MM-DD form."""
