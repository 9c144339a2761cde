"""Prompt templates and the keyword rules that pick one for a system prompt."""

from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Tuple

from .tokenizer import estimate_tokens


@dataclass
class PromptTemplate:
    id: str
    name: str
    template: str
    variables: List[str] = field(default_factory=list)
    token_count: int = 0

    def __post_init__(self):
        if not self.token_count:
            self.token_count = estimate_tokens(self.template)

    def render(self, values: Dict[str, str]) -> str:
        rendered = self.template
        for name in self.variables:
            rendered = rendered.replace(f"{{{{{name}}}}}", values.get(name, ""))
        return rendered

    def to_dict(self) -> Dict:
        return {
            "id": self.id,
            "name": self.name,
            "template": self.template,
            "variables": list(self.variables),
            "tokenCount": self.token_count,
        }


STANDARD_TEMPLATES = [
    PromptTemplate(
        id="code-review",
        name="Code Review",
        template="Review code: {{language}}. Focus: {{focus}}. Codebase: {{project}}",
        variables=["language", "focus", "project"],
        token_count=12,
    ),
    PromptTemplate(
        id="data-analysis",
        name="Data Analysis",
        template="Analyze {{dataType}} data. Goal: {{goal}}. Format: {{format}}",
        variables=["dataType", "goal", "format"],
        token_count=10,
    ),
    PromptTemplate(
        id="bug-fix",
        name="Bug Fix",
        template="Debug {{component}}. Error: {{error}}. Context: {{context}}",
        variables=["component", "error", "context"],
        token_count=9,
    ),
    PromptTemplate(
        id="documentation",
        name="Documentation",
        template="Doc for {{subject}}. Audience: {{audience}}. Style: {{style}}",
        variables=["subject", "audience", "style"],
        token_count=10,
    ),
    PromptTemplate(
        id="assistant",
        name="Assistant",
        template="AI assistant. Tools: {{tools}}. Focus: {{focus}}",
        variables=["tools", "focus"],
        token_count=8,
    ),
]

FALLBACK_TEMPLATE_ID = "assistant"


def _has_any(text: str, *keywords: str) -> bool:
    return any(keyword in text for keyword in keywords)


# Evaluated top to bottom against the lower-cased prompt; first match wins.
TEMPLATE_RULES: List[Tuple[str, Callable[[str], bool]]] = [
    ("code-review", lambda p: "review" in p and _has_any(p, "code", "pr")),
    ("data-analysis", lambda p: _has_any(p, "analy", "data") and _has_any(p, "csv", "json", "excel")),
    ("bug-fix", lambda p: _has_any(p, "bug", "error", "fix")),
    ("documentation", lambda p: _has_any(p, "document", "readme", "guide")),
]

LANGUAGE_KEYWORDS = ["python", "javascript", "typescript", "java", "rust", "go", "c++"]

TOOL_KEYWORDS: List[Tuple[str, Tuple[str, ...]]] = [
    ("web", ("web",)),
    ("files", ("file",)),
    ("database", ("database", "db")),
]

FOCUS_KEYWORDS: List[Tuple[str, str]] = [
    ("performance", "performance"),
    ("security", "security"),
    ("user", "UX"),
]


def extract_language(prompt_lower: str) -> str:
    return next((lang for lang in LANGUAGE_KEYWORDS if lang in prompt_lower), "code")


def extract_tools(prompt_lower: str) -> str:
    tools = [name for name, keywords in TOOL_KEYWORDS if _has_any(prompt_lower, *keywords)]
    return ",".join(tools) or "all"


def extract_focus(prompt_lower: str) -> str:
    return next((label for keyword, label in FOCUS_KEYWORDS if keyword in prompt_lower), "general")


VARIABLE_EXTRACTORS: Dict[str, Callable[[str], str]] = {
    "language": extract_language,
    "tools": extract_tools,
    "focus": extract_focus,
}


def leading_words(prompt: str, count: int = 3) -> str:
    return " ".join(prompt.split()[:count])


def extract_variables(template: PromptTemplate, prompt: str) -> Dict[str, str]:
    prompt_lower = prompt.lower()
    values = {}
    for name in template.variables:
        extractor = VARIABLE_EXTRACTORS.get(name)
        value = extractor(prompt_lower) if extractor else None
        values[name] = value or leading_words(prompt)
    return values


class TemplateMatcher:
    def __init__(self, templates: Optional[List[PromptTemplate]] = None):
        self.templates: Dict[str, PromptTemplate] = {}
        for template in templates if templates is not None else STANDARD_TEMPLATES:
            self.add(template)

    def add(self, template: PromptTemplate) -> None:
        self.templates[template.id] = template

    def get(self, template_id: str) -> PromptTemplate:
        return self.templates[template_id]

    def detect(self, prompt: str) -> PromptTemplate:
        prompt_lower = prompt.lower()
        for template_id, matches in TEMPLATE_RULES:
            if template_id in self.templates and matches(prompt_lower):
                return self.templates[template_id]
        return self.templates[FALLBACK_TEMPLATE_ID]

    def apply(self, template: PromptTemplate, prompt: str) -> str:
        return template.render(extract_variables(template, prompt))

    def __len__(self) -> int:
        return len(self.templates)
