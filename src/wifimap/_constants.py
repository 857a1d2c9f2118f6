"""Internal constants shared across the library."""

CURRENT_SCHEMA_VERSION = 2
"""Schema version written by this build."""

LEGACY_SCHEMA_VERSION = 1
"""Implicit version of map files that carry no ``schema_version`` key."""

LOCK_SUFFIX = ".lock"
STAGING_PREFIX = ".wifimap-"
STAGING_SUFFIX = ".tmp"
