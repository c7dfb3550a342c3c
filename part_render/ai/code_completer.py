import logging
import os
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from openai import AsyncOpenAI

from part_render.core.assembler import detect_component_name, has_export
from part_render.core.import_synthesizer import (
    DEFAULT_IMPORT_MAPPINGS,
    ensure_runtime_import,
    merge_imports,
    render_import,
)
from part_render.core.models import DependencyContext, ImportInfo, ImportSpecifier

logger = logging.getLogger("part_render.ai")

_CODE_FENCE = re.compile(r"```(?:jsx?|tsx?|javascript|typescript)?[ \t]*\r?\n(.*?)\r?\n```", re.DOTALL)

FALLBACK_CONFIDENCE = 0.5


@dataclass
class CompletionRequest:
    code: str
    dependencies: DependencyContext
    project_context: str = ""


@dataclass
class CompletionResult:
    completed_code: str
    suggestions: List[str] = field(default_factory=list)
    confidence: float = 0.0
    from_model: bool = False


class CodeCompleter:
    """Asks an OpenAI-compatible chat endpoint to complete a fragment."""

    def __init__(self, config: Dict[str, Any]):
        self.config = config or {}
        self.api_key = os.environ.get(self.config.get("api_key_env_var", "OPENAI_API_KEY"))
        self.base_url = self.config.get("base_url", "http://localhost:11434/v1")
        self.model = self.config.get("model", "codellama")
        self.max_tokens = self.config.get("max_tokens", 1024)
        self.temperature = self.config.get("temperature", 0.2)
        self._cache: Dict[Tuple[str, Tuple[str, ...]], CompletionResult] = {}

        if not self.api_key:
            # Local endpoints such as Ollama accept any key
            logger.debug("No API key found for CodeCompleter; using a placeholder key")

        self.client = AsyncOpenAI(api_key=self.api_key or "not-needed", base_url=self.base_url)

    @staticmethod
    def cache_key(request: CompletionRequest) -> Tuple[str, Tuple[str, ...]]:
        return request.code, tuple(sorted(request.dependencies.missing_identifiers))

    def clear_cache(self) -> None:
        self._cache.clear()

    async def complete_partial_code(self, request: CompletionRequest) -> CompletionResult:
        """
        Complete a fragment with the model, falling back to rule-based imports on any failure.

        Model answers are cached per (code, missing identifiers); fallbacks are not.
        """
        key = self.cache_key(request)
        if key in self._cache:
            logger.debug("Using cached completion")
            return self._cache[key]

        try:
            response = await self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": "You are an expert React developer. Reply with code only."},
                    {"role": "user", "content": self.build_prompt(request)},
                ],
                max_tokens=self.max_tokens,
                temperature=self.temperature,
            )
            content = response.choices[0].message.content
        except Exception as e:
            logger.error(f"Code completion failed: {e}")
            return self.fallback_completion(request)

        if not content or not content.strip():
            logger.warning("Model returned an empty completion")
            return self.fallback_completion(request)

        result = self.parse_response(content, request)
        self._cache[key] = result
        return result

    def build_prompt(self, request: CompletionRequest) -> str:
        missing = ", ".join(sorted(request.dependencies.missing_identifiers)) or "none"
        imports = "\n".join(render_import(info) for info in request.dependencies.imports) or "(none)"
        project = f"\nProject context:\n{request.project_context}\n" if request.project_context else ""
        return f"""Complete this React component code. The code is missing these identifiers: {missing}.

Existing imports:
{imports}
{project}
Current code:
```tsx
{request.code}
```

Requirements:
1. Add necessary imports for React and missing identifiers
2. Complete any partial function implementations
3. Ensure the component is exportable
4. Keep the code simple and focused

Return ONLY the completed code without explanations."""

    def parse_response(self, response: str, request: CompletionRequest) -> CompletionResult:
        match = _CODE_FENCE.search(response)
        completed = match.group(1) if match else response.strip()
        return CompletionResult(
            completed_code=completed,
            suggestions=self.suggestions_for(request),
            confidence=self.evaluate_completion(completed, request),
            from_model=True,
        )

    @staticmethod
    def evaluate_completion(code: str, request: CompletionRequest) -> float:
        confidence = 0.5
        if "import" in code:
            confidence += 0.1
        if "export" in code:
            confidence += 0.1
        missing = request.dependencies.missing_identifiers
        if missing:
            resolved = sum(1 for name in missing if name in code)
            confidence += resolved / len(missing) * 0.3
        else:
            confidence += 0.3
        return min(confidence, 1.0)

    @staticmethod
    def suggestions_for(request: CompletionRequest) -> List[str]:
        suggestions = []
        missing = request.dependencies.missing_identifiers
        if "useState" in missing:
            suggestions.append("Consider initializing state with default values")
        if "useEffect" in missing:
            suggestions.append("Add a cleanup function to useEffect if needed")
        if "try" not in request.code:
            suggestions.append("Add error handling for robust component behavior")
        return suggestions

    def fallback_completion(self, request: CompletionRequest) -> CompletionResult:
        """Rule-based completion: imports from the package table plus a default export."""
        suggested: List[ImportInfo] = []
        for name in sorted(request.dependencies.missing_identifiers):
            candidates = DEFAULT_IMPORT_MAPPINGS.get(name)
            if not candidates:
                continue
            candidate = candidates[0]
            spec = ImportSpecifier(name=name if candidate.is_default else candidate.name, is_default=candidate.is_default)
            suggested.append(ImportInfo(module=candidate.module, specifiers=[spec]))

        imports = ensure_runtime_import(merge_imports(request.dependencies.imports, suggested))
        header = "\n".join(render_import(info) for info in imports if info.span is None)
        parts = [header, request.code.strip("\n")]
        if not has_export(request.code):
            parts.append(f"export default {detect_component_name(request.code) or 'Component'};")

        return CompletionResult(
            completed_code="\n\n".join(part for part in parts if part),
            suggestions=[
                "Add props validation",
                "Consider adding error boundaries",
                "Add loading states if async operations exist",
            ],
            confidence=FALLBACK_CONFIDENCE,
        )
