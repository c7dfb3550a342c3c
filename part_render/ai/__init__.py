"""
Language-model assisted completion of fragments.
"""

from .code_completer import CodeCompleter, CompletionRequest, CompletionResult

__all__ = ["CodeCompleter", "CompletionRequest", "CompletionResult"]
