"""
文字处理 - MTEXT 行内格式清除与 TEXT 控制码替换

MTEXT 规则：
- \\P 换行，\\~ 不换行空格
- \\f \\F \\H \\W \\Q \\T \\A \\C \\c \\p 带参数（以 ; 结束）整体去除
- \\S 堆叠分数转为 a/b
- \\L \\l \\O \\o \\K \\k 开关去除
- \\\\ \\{ \\} 转义为字面字符；未转义的花括号去除
- \\U+XXXX 转为对应字符
"""

from __future__ import annotations

import re

_ARGUMENT_CODES = frozenset("fFHWQTACcp")
_TOGGLE_CODES = frozenset("LlOoKk")

_SPECIAL_CHARS = {
    "%%d": "°",
    "%%D": "°",
    "%%p": "±",
    "%%P": "±",
    "%%c": "⌀",
    "%%C": "⌀",
    "%%%": "%",
}
_SPECIAL_RE = re.compile(r"%%[dDpPcC%]|%%[uUoOkK]|%%\d{3}")

TEXT_HALIGN = {0: "left", 1: "center", 2: "right", 3: "aligned", 4: "middle", 5: "fit"}
TEXT_VALIGN = {0: "baseline", 1: "bottom", 2: "middle", 3: "top"}
MTEXT_ATTACHMENT = {
    1: "top_left",
    2: "top_center",
    3: "top_right",
    4: "middle_left",
    5: "middle_center",
    6: "middle_right",
    7: "bottom_left",
    8: "bottom_center",
    9: "bottom_right",
}


def plain_mtext(text: str) -> str:
    """去除 MTEXT 行内格式，返回纯文本"""
    out: list[str] = []
    i = 0
    n = len(text)
    while i < n:
        ch = text[i]
        if ch == "\\" and i + 1 < n:
            code = text[i + 1]
            if code == "P":
                out.append("\n")
                i += 2
            elif code == "~":
                out.append(" ")
                i += 2
            elif code in "\\{}":
                out.append(code)
                i += 2
            elif code in _TOGGLE_CODES:
                i += 2
            elif code == "S":
                end = text.find(";", i + 2)
                end = n if end == -1 else end
                stacked = text[i + 2:end]
                out.append(re.sub(r"[\^#/]", "/", stacked, count=1).replace("^", ""))
                i = end + 1
            elif code in _ARGUMENT_CODES:
                end = text.find(";", i + 2)
                i = n if end == -1 else end + 1
            elif code == "U" and text[i + 2:i + 3] == "+":
                hex_code = text[i + 3:i + 7]
                try:
                    out.append(chr(int(hex_code, 16)))
                    i += 7
                except ValueError:
                    out.append(code)
                    i += 2
            else:
                out.append(code)
                i += 2
        elif ch in "{}":
            i += 1
        else:
            out.append(ch)
            i += 1
    return plain_text("".join(out))


def plain_text(text: str) -> str:
    """替换 TEXT 控制码（%%d/%%p/%%c 等），去除下划线/上划线开关"""

    def replace(match: re.Match[str]) -> str:
        token = match.group(0)
        if token in _SPECIAL_CHARS:
            return _SPECIAL_CHARS[token]
        if token[2:].isdigit():
            return chr(int(token[2:]))
        return ""

    return _SPECIAL_RE.sub(replace, text).strip()
