"""HTTP boundary to the code services (run, optimize, generate-tests, run-tests).

Only request/response contracts live here; the services themselves are opaque.
"""
