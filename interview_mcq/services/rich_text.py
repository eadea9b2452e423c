"""
services/rich_text.py

문제/보기/해설 마크다운을 화면 블록으로 나눈다 (표시 전용, 로직 없음).
코드 펜스(```lang ... ```)는 code 블록, 나머지는 text 블록이 된다.
"""

import re
from typing import List, Optional

from pydantic import BaseModel

_FENCE_RE = re.compile(r"```([\w+#.-]*)[^\S\n]*\n?([\s\S]*?)```")

_CODE_HINTS = (
    "```", "function", "class ", "import ", "const ", "let ", "var ", "def ",
    "public ", "private ", "console.", "print(", "return ",
)


class RichBlock(BaseModel):
    type: str  # "text" | "code"
    content: str
    language: Optional[str] = None


def render_blocks(text: str) -> List[RichBlock]:
    if not text:
        return []
    blocks: List[RichBlock] = []
    pos = 0
    for match in _FENCE_RE.finditer(text):
        before = text[pos:match.start()].strip()
        if before:
            blocks.append(RichBlock(type="text", content=before))
        code = match.group(2).rstrip("\n").strip("\n")
        blocks.append(RichBlock(type="code", content=code, language=match.group(1) or None))
        pos = match.end()
    rest = text[pos:].replace("```", "").strip()
    if rest:
        blocks.append(RichBlock(type="text", content=rest))
    return blocks


def contains_code(text: str) -> bool:
    """코드가 섞인 문제인지 대략 판단 (고정폭 레이아웃 선택용)."""
    if not text:
        return False
    if any(hint in text for hint in _CODE_HINTS):
        return True
    if re.search(r"\b(for|while|if|else)\s*\(", text):
        return True
    return "<" in text and ">" in text and "/" in text
