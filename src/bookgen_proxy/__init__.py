"""
Book generation proxy.

Provides:
- JWT bearer-token gate for protected routes
- Forwarder that turns a book request into one DashScope (Qwen) generation call
- FastAPI app exposing /, /health and /generate-book
"""
