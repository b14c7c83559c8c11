"""Split chat message text into prose and fenced code parts."""

import re
from dataclasses import dataclass
from typing import Literal

# Opening fence with an optional language tag, body, then a closing fence on
# its own line. An opening fence without a closing one stays plain text.
CODE_BLOCK_RE = re.compile(r"```(\w+)?\n([\s\S]+?)\n```")


@dataclass
class MessagePart:
    kind: Literal["text", "code"]
    content: str
    language: str | None = None


def parse_message_content(content: str) -> list[MessagePart]:
    parts: list[MessagePart] = []
    last_index = 0

    for match in CODE_BLOCK_RE.finditer(content):
        if match.start() > last_index:
            parts.append(MessagePart(kind="text", content=content[last_index:match.start()]))
        language = (match.group(1) or "plaintext").lower()
        parts.append(MessagePart(kind="code", content=match.group(2).strip(), language=language))
        last_index = match.end()

    if last_index < len(content):
        parts.append(MessagePart(kind="text", content=content[last_index:]))

    return [p for p in parts if p.content.strip()]
