"""
Core Module - Constants.

============================================================
RESPONSIBILITY
============================================================
Defines the constants shared by the database and storage layers.

- Default record configuration values
- Legacy option names understood by Record.set_up()
- Identifier shape patterns
- Status message types

============================================================
"""

import logging
import re
from typing import Dict, Pattern

# ============================================================
# RECORD CONFIGURATION DEFAULTS
# ============================================================

DEFAULT_KEY_COLUMN = "id"
"""Primary key column used when a record kind does not declare one."""

DEFAULT_NAME_COLUMN = ""
"""Empty name column means string identifiers are not treated as names."""

# ============================================================
# LEGACY OPTION NAMES
# ============================================================

# Legacy camelCase option -> RecordConfig attribute
LEGACY_OPTION_NAMES: Dict[str, str] = {
    "myTable": "table",
    "keyColumn": "key_column",
    "nameColumn": "name_column",
    "createColumn": "create_column",
    "lastModifiedColumn": "last_modified_column",
}

CONFIG_ATTRIBUTES = tuple(LEGACY_OPTION_NAMES.values())

# ============================================================
# IDENTIFIER PATTERNS
# ============================================================

UUID_PATTERN: Pattern[str] = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$",
    re.IGNORECASE,
)

# ============================================================
# STATUS MESSAGES
# ============================================================

STATUS_LOG_LEVELS: Dict[str, int] = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "success": logging.INFO,
    "notice": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}

# ============================================================
# LOGGING
# ============================================================

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
