"""Git plumbing used by the pre-commit flow."""

from .staged import StagedFiles
from .stager import Stager

__all__ = ["StagedFiles", "Stager"]
