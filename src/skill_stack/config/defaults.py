"""Built-in default configuration for skill-stack."""

# Default configuration that serves as the base for all other configs
DEFAULT_CONFIG = {
    "version": "1.0",
    "settings": {
        "output_dir": ".claude/agents",
        "state_dir": ".skill-stack",
        "separator": "\n\n---\n\n",
    },
    "categories": {},
    "units": [],
    "aliases": {},
    "templates": [],
    "profiles": {},
}
