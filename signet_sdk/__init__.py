"""
Signet SDK
==========
Client-side protocol for creating and mutating Signet identity entities.

Provides:
- Ed25519 key pairs / ownership key sets with a portable text form
- Canonical payload construction and detached signatures
- Agent operations: create, set XID / channel, rekey, assign
- Registry transports (HTTP, in-process loopback)
"""
