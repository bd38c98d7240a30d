"""
FulQrun Deal Analytics Backend Package.

Deal progression and analytics for the FulQrun sales platform: a stage-gate
engine that decides when a deal may advance through the PEAK pipeline
(prospect, engage, acquire, keep) and a rule-based analyzer that scores deal
health and rolls results up across a portfolio.

Subpackages:
    - api: FastAPI route handlers
    - core: Configuration, clock, database and dependencies
    - models: Pydantic schemas and enums
    - services: Engines, analytics and persistence
    - sql: Parameterized SQL queries
"""

__version__ = "1.0.0"
