"""
CertAnchor - document fingerprint anchoring service.

Issuers register the SHA-256 fingerprint of a certificate on a public
ledger; anyone can later check a document against the registered
fingerprints.

Operating rules:
- One signing identity, one writer: every ledger write goes through the
  nonce sequencer
- An anchored fingerprint is never anchored twice
- "Unknown" is never reported as "not anchored"
"""

__version__ = "0.1.0"
__all__ = ["__version__"]
