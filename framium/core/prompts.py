"""
System prompts and canvas context rendering.
"""

import json
from typing import Any, Mapping, Optional

ASK_MODE = "ask"
AGENT_MODE = "agent"
MODES = (ASK_MODE, AGENT_MODE)

BASE_PROMPT = """You are Framium AI, an intelligent design and development assistant integrated with Framer. You help users create beautiful, functional UI components and automate design workflows.

Key capabilities:
- Generate React/TypeScript components optimized for Framer
- Create responsive layouts and modern UI designs
- Provide step-by-step guidance for complex tasks
- Generate production-ready code with best practices

Design principles:
- Modern, clean aesthetics with attention to detail
- Responsive design that works across devices
- Accessibility-first approach
- Performance optimization
- User experience focus"""

AGENT_SUFFIX = """AGENT MODE: You are in autonomous agent mode. Break down complex requests into actionable steps and execute them systematically. For each step:
1. Explain what you're doing
2. Show the implementation
3. Verify the result
4. Move to the next step

You can create multiple components, set up workflows, and handle multi-step processes automatically."""

ASK_SUFFIX = """ASK MODE: Provide helpful, detailed responses to user questions. When generating code or components, include:
- Clear explanations of the approach
- Complete, working code examples
- Best practices and optimization tips
- Responsive design considerations"""


def system_prompt(mode: str = ASK_MODE) -> str:
    suffix = AGENT_SUFFIX if mode == AGENT_MODE else ASK_SUFFIX
    return f"{BASE_PROMPT}\n\n{suffix}"


def render_context(context: Optional[Mapping[str, Any]]) -> str:
    """Render the canvas context into text appended to the user prompt.

    Recognized keys: selectedFrames (list of {name}), currentProject ({name}),
    designTokens (any JSON), componentLibrary (list of names).
    """
    if not context:
        return ""

    lines = []
    frames = context.get("selectedFrames") or []
    if frames:
        names = [str(f.get("name", "")) if isinstance(f, Mapping) else str(f) for f in frames]
        lines.append(f"Selected Frames: {', '.join(names)}")

    project = context.get("currentProject")
    if isinstance(project, Mapping) and project.get("name"):
        lines.append(f"Project Context: {project['name']}")

    if context.get("designTokens"):
        lines.append(f"Design Tokens: {json.dumps(context['designTokens'], default=str)}")

    library = context.get("componentLibrary") or []
    if library:
        lines.append(f"Available Components: {', '.join(str(c) for c in library)}")

    return "\n".join(lines)


def build_user_prompt(prompt: str, context: Optional[Mapping[str, Any]] = None) -> str:
    rendered = render_context(context)
    return f"{prompt}\n\n{rendered}" if rendered else prompt
