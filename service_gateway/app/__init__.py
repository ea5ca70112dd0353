"""
API Gateway Service package for the Relay Access Layer.

The gateway is the only public surface. For each (domain, operation) pair it
relays the caller's request across the trust boundary:

- Validation of the external input (presence only)
- Signing of the outbound request with the gateway identity
- Sending over the private network to the internal domain API
- Masking of every failure into one generic 500 response

Structure:
- app.main: FastAPI app and route wiring.
- app.relay: Relay handler and per-invocation state machine.
- app.models: Relay targets and their input shapes.
- app.adapters: HTTP client for the internal APIs.
"""
