from __future__ import annotations

import re

from markdown import Markdown
from markdown.extensions import Extension
from markdown.preprocessors import Preprocessor

RE_HIGHLIGHT_OPEN = re.compile(r"^\s*\{%-?\s*highlight\s+(?P<lang>[\w+#.-]+)(?P<opts>[^%]*)-?%\}\s*$")
RE_HIGHLIGHT_CLOSE = re.compile(r"^\s*\{%-?\s*endhighlight\s*-?%\}\s*$")
RE_RAW_TAG = re.compile(r"\{%-?\s*(?:end)?raw\s*-?%\}")


def fence_for(lines: list[str]) -> str:
    longest = 0
    for line in lines:
        match = re.match(r"^\s*(`{3,})", line)
        if match:
            longest = max(longest, len(match.group(1)))
    return "`" * max(3, longest + 1)


class HighlightBlockPreprocessor(Preprocessor):
    """Turns Jekyll ``{% highlight lang %}`` blocks into fenced code blocks."""

    def run(self, lines: list[str]) -> list[str]:
        out: list[str] = []
        block: list[str] = []
        lang = ""
        in_block = False
        for line in lines:
            if not in_block:
                match = RE_HIGHLIGHT_OPEN.match(line)
                if match:
                    in_block = True
                    lang = match.group("lang")
                    block = []
                    continue
                out.append(RE_RAW_TAG.sub("", line))
                continue
            if RE_HIGHLIGHT_CLOSE.match(line):
                fence = fence_for(block)
                out.extend(["", f"{fence}{lang}", *block, fence, ""])
                in_block = False
                continue
            block.append(RE_RAW_TAG.sub("", line))
        if in_block:
            # unterminated block: keep the code as it was written
            out.append(f"{{% highlight {lang} %}}")
            out.extend(block)
        return out


class LiquidBlocksExtension(Extension):
    def extendMarkdown(self, md: Markdown) -> None:
        md.preprocessors.register(HighlightBlockPreprocessor(md), "liquid_highlight", 28)
