"""
Services Layer

Business logic for bookings and queue play that:
- Accept domain inputs (IDs, sessions, caller ids)
- Return domain outputs (models, dataclasses, dicts)
- Do NOT depend on HTTP request/response objects
- Raise typed errors from courtqueue.errors; never partially commit
"""
