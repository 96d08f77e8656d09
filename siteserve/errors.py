from __future__ import annotations


class SiteError(Exception):
    status = 500


class NotFound(SiteError):
    status = 404


class RenderError(SiteError):
    status = 500


class ConfigError(SiteError):
    status = 500


class ScanTimeout(SiteError):
    status = 503
