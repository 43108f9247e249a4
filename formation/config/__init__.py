"""Configuration package for the formation engine.

Static lookup tables and numeric defaults, split by concern:

- field: pitch geometry, index cell size and search radii
- roles: role compatibility table and positional categories
- scoring: sub-score weights, attribute requirements and condition bonuses
- compute: execution host defaults and environment overrides

Every table is read-only; nothing in the engine mutates them at runtime.
"""
