"""Domain layer — pure rules with no I/O.

This layer must never import from infrastructure, services, commands, or output.
"""
