"""SKSettings — schema-driven settings editor for sovereign agent skills.

Typed setting descriptors and opaque constants, validated field by field,
edited against a working copy and committed as a whole.
Load and save are pluggable: a skill directory, or a remote settings API.
"""

__version__ = "0.1.0"

DEFAULT_SETTINGS_URL = "http://127.0.0.1:8484/api"
