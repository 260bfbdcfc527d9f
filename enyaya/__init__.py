"""
eNyaya Resolve - Online Dispute Resolution Service
==================================================

Back end for registering contract disputes, assigning mediators and
arbitrators, scheduling meetings and issuing award / report documents.

Core pieces:
1. Award layout engine (paginated PDF award / mediation report)
2. Issuance workflow (render, upload, record update, notify)
"""

__version__ = "1.0.0"
