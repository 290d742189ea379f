"""
Shared, cross-cutting code for the API.

`core/` holds the small building blocks every feature and CLI tool uses
(DB pool, settings, logging, schema migrations). Keep feature-specific SQL
in the corresponding feature package (e.g. `rooms/`).
"""
