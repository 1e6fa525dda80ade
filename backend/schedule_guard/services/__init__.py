"""
Services Layer

Pure business logic services that:
- Accept domain inputs (IDs, sessions, etc.)
- Return domain outputs (models, pydantic results)
- Raise schedule_guard.errors exceptions, never HTTP errors
- Do NOT mutate data unless explicitly designed to (blockers, overrides, import execute)
"""
