"""Configuration: settings sources, TOML sections and logging setup."""
