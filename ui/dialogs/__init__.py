from .signature_dialog import SignatureDialog

__all__ = ["SignatureDialog"]
