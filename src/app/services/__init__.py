"""Services shared by the CLI and the GUI.

This package contains:
- case_service.py: CaseService, the OperationResult boundary over extraction,
  decoding, correlation and the case store
"""

from .case_service import CaseService, OperationResult

__all__ = ["CaseService", "OperationResult"]
