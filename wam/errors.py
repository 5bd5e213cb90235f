#===============================================================================
#  WAM_Web_App_Manager | errors.py
#===============================================================================
#  Author      : Edwin A. Rodriguez
#  Role/Team   : SAP COE / SAP SRE (GRM-Testing-Automation & Governance)
#  Created     : 2026-02-10
#  Last Update : 2026-10-19
#
#  Summary
#  -------
#  Error types raised by the launcher store and the icon pipeline.
#
#  Copyright (c) 2026 Edwin A. Rodriguez. All rights reserved.
#  Provided "AS IS", without warranty of any kind.
#===============================================================================

from __future__ import annotations


class LauncherError(Exception):
    """Base class for every error surfaced by wam."""


class ValidationError(LauncherError):
    """Launcher is missing a name, a usable URL or a browser."""


class IoError(LauncherError):
    """Entry or icon file could not be read, written or moved."""


class ParseError(LauncherError):
    """A persisted entry carries our marker but cannot be read back."""

    def __init__(self, path, reason: str):
        super().__init__(f"{path}: {reason}")
        self.path = path
        self.reason = reason


class NetworkError(LauncherError):
    """A remote icon source could not be fetched."""


class DecodeError(LauncherError):
    """Icon bytes are corrupt or in an unsupported format."""
