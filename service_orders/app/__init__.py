"""
Internal Orders Service package for the Relay Access Layer.

A private domain API: reachable only from the private network, only with a
signed request, and only for the caller the resource policy allows.

- app.main: Service wiring and entry point.
- app.models: The order domain definition (fields, type tag, projection).
"""
