"""
FastAPI gateway for a medical-coding assistant backed by the OpenAI chat API.

This gateway provides:
- PDF text extraction for grounding answers in uploaded documents
- A keyword topic gate restricting conversations to medical coding
- Persona system-prompt injection and provider-name sanitization
- Structured error handling and health checks
"""

__version__ = "0.1.0"
