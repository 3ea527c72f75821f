"""Security — credential signing, login callbacks, and audit events."""
