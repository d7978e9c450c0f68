from __future__ import annotations  # Results report package exports

from .pdf import ResultsPDF, generate_results_pdf

__all__ = ["ResultsPDF", "generate_results_pdf"]
