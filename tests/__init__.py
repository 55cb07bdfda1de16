"""
thumbcache test suite

Structure:
- unit/: key derivation, path resolution, staleness, transform, dispatcher, config
- integration/: FastAPI app with the middleware installed, warm-up CLI
"""
