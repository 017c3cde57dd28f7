"""Room domain services: identity, connections, session state, voting and export.

This package contains the transport-free core that the HTTP routes and
socket handlers call into. Nothing here imports Flask; the transport is
handed in as a publish callable and per-connection channel objects.
"""
