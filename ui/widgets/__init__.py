from .pdf_display import PDFDisplayLabel
from .signature_pad import SignaturePadWidget

__all__ = [
    "PDFDisplayLabel",
    "SignaturePadWidget",
]
