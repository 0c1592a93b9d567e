from .verifier import ClientVerifier, VerificationCheck

__all__ = ["ClientVerifier", "VerificationCheck"]
