"""Process-wide static lookup tables (facility aliases, tag rules)."""
