"""Pure Core — domain types, decisions, and reconciliation without IO.

Invariants:
    - Nothing in core imports from infrastructure, services, or api
    - IO collaborators reached only through repository_protocols
"""
