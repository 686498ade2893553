"""Known OpenAI-compatible provider presets."""

from dataclasses import dataclass
from enum import Enum
from typing import List


class ProviderType(str, Enum):
    OPENAI = "openai"
    DEEPSEEK = "deepseek"
    QWEN = "qwen"
    ERNIE = "ernie"
    GLM = "glm"
    MOONSHOT = "moonshot"
    YI = "yi"
    DOUBAO = "doubao"
    BAICHUAN = "baichuan"
    MINIMAX = "minimax"
    SILICONFLOW = "siliconflow"
    OLLAMA = "ollama"
    CUSTOM = "custom"


@dataclass(frozen=True)
class ProviderPreset:
    provider_type: ProviderType
    display_name: str
    base_url: str
    default_model: str


_PRESETS = {
    ProviderType.OPENAI: ProviderPreset(
        ProviderType.OPENAI, "OpenAI", "https://api.openai.com/v1", "gpt-4o"
    ),
    ProviderType.DEEPSEEK: ProviderPreset(
        ProviderType.DEEPSEEK, "DeepSeek", "https://api.deepseek.com", "deepseek-chat"
    ),
    ProviderType.QWEN: ProviderPreset(
        ProviderType.QWEN,
        "Qwen (Tongyi)",
        "https://dashscope.aliyuncs.com/compatible-mode/v1",
        "qwen-plus",
    ),
    ProviderType.ERNIE: ProviderPreset(
        ProviderType.ERNIE,
        "ERNIE Bot",
        "https://aip.baidubce.com/rpc/2.0/ai_custom/v1/wenxinworkshop/chat",
        "ernie-bot-4",
    ),
    ProviderType.GLM: ProviderPreset(
        ProviderType.GLM, "Zhipu GLM", "https://open.bigmodel.cn/api/paas/v4", "glm-4"
    ),
    ProviderType.MOONSHOT: ProviderPreset(
        ProviderType.MOONSHOT,
        "Moonshot (Kimi)",
        "https://api.moonshot.cn/v1",
        "moonshot-v1-8k",
    ),
    ProviderType.YI: ProviderPreset(
        ProviderType.YI, "01.AI Yi", "https://api.lingyiwanwu.com/v1", "yi-34b-chat"
    ),
    ProviderType.DOUBAO: ProviderPreset(
        ProviderType.DOUBAO,
        "Doubao",
        "https://ark.cn-beijing.volces.com/api/v3",
        "doubao-pro-4k",
    ),
    ProviderType.BAICHUAN: ProviderPreset(
        ProviderType.BAICHUAN,
        "Baichuan",
        "https://api.baichuan-ai.com/v1",
        "baichuan2-turbo",
    ),
    ProviderType.MINIMAX: ProviderPreset(
        ProviderType.MINIMAX, "MiniMax", "https://api.minimax.chat/v1", "abab5.5-chat"
    ),
    ProviderType.SILICONFLOW: ProviderPreset(
        ProviderType.SILICONFLOW,
        "SiliconFlow",
        "https://api.siliconflow.cn/v1",
        "deepseek-ai/DeepSeek-V3",
    ),
    ProviderType.OLLAMA: ProviderPreset(
        ProviderType.OLLAMA, "Ollama (local)", "http://localhost:11434/v1", "llama3"
    ),
    ProviderType.CUSTOM: ProviderPreset(
        ProviderType.CUSTOM, "Custom", "https://api.openai.com/v1", "gpt-3.5-turbo"
    ),
}


def get_preset(provider_type) -> ProviderPreset:
    """Look up a preset by ProviderType or its string value.

    Raises:
        ValueError: If the provider type is unknown.
    """
    return _PRESETS[ProviderType(provider_type)]


def list_presets() -> List[ProviderPreset]:
    return list(_PRESETS.values())
