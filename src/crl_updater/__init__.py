"""
crl_updater — keeps local Certificate Revocation List files in sync.

Periodically downloads CRLs over HTTP, checks that the payload looks like a
PEM or DER CRL, and atomically replaces the local copy only when its content
changed. Outcomes are exposed as Prometheus counters.

Built on the Railway-Oriented Programming (ROP) framework for
explicit, composable, functional error handling.
"""

__version__ = "0.1.0"
