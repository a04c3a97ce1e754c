"""Infrastructure layer — database, cell store, claim ledger, file intake.

This layer depends on stdlib and third-party libs (SQLAlchemy, Pillow).
It must never import from services, commands, or output.
"""
