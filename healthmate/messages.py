"""
Display text for completion outcomes.

The core reports failures as CompletionKind values; these tables decide what
the user actually reads on each surface.
"""

from healthmate.completion import CompletionKind, CompletionResult


REPLY_MESSAGES = {
    CompletionKind.INPUT_REJECTED:        "⚠️ 请先输入问题。",
    CompletionKind.CONFIGURATION_MISSING: "❌ 后端未配置 DeepSeek API Key，请检查 .env",
    CompletionKind.SERVICE_FAILURE:       "🚨 AI 服务调用异常，请检查网络或 Key 配置。",
    CompletionKind.EMPTY_CONTENT:         "AI 没有返回内容。",
}

ADVICE_MESSAGES = {
    **REPLY_MESSAGES,
    CompletionKind.SERVICE_FAILURE: "❌ 网络错误或AI服务调用失败。",
    CompletionKind.EMPTY_CONTENT:   "AI 暂时没有回复。",
}

CHAT_PLACEHOLDERS = {
    **REPLY_MESSAGES,
    CompletionKind.SERVICE_FAILURE: "❌ 网络错误或API调用失败。",
    CompletionKind.EMPTY_CONTENT:   "AI 暂时没有回复。",
}

ADVICE_LOADING = "正在生成建议..."
CHAT_GREETING = "👋 你好，我是你的AI健康助手，有什么想咨询的吗？"


def _render(result: CompletionResult, table: dict) -> str:
    if result.ok:
        return result.text
    return table[result.kind]


def render_reply(result: CompletionResult) -> str:
    """Text for the stateless message → reply endpoint."""
    return _render(result, REPLY_MESSAGES)


def render_advice(result: CompletionResult) -> str:
    return _render(result, ADVICE_MESSAGES)


def render_chat(result: CompletionResult) -> str:
    return _render(result, CHAT_PLACEHOLDERS)
