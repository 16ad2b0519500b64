"""Model identifier resolution.

A subagent's ``model`` field is a short identifier. Resolution order:

1. ``inherit`` resolves to ``None`` (the runtime's default model).
2. An exact entry in ``MODEL_BINDINGS``.
3. Keyword inference on the identifier (``claude`` -> anthropic, ...). The
   identifier is passed to the provider unchanged; agent creation logs a
   warning for such bindings.
4. Anything else is unresolvable and rejected by validation.
"""

from dataclasses import dataclass
from typing import Dict, List, Optional

from .models.enums import ModelProvider
from .models.subagent import INHERIT_MODEL, ModelBinding
from .utils.logging import get_logger

logger = get_logger("model_mapper")

DASHSCOPE_BASE_URL = "https://dashscope.aliyuncs.com/api/v1"


@dataclass
class ModelInfo:
    """模型目录条目"""
    id: str
    binding: ModelBinding
    display_name: str
    speed: str  # fast / balanced / smart
    context_window: int
    supports_tools: bool = True


def _info(
    model_id: str,
    provider: ModelProvider,
    model: str,
    display_name: str,
    speed: str,
    context_window: int,
    base_url: Optional[str] = None,
) -> ModelInfo:
    return ModelInfo(
        id=model_id,
        binding=ModelBinding(provider=provider, model=model, base_url=base_url),
        display_name=display_name,
        speed=speed,
        context_window=context_window,
    )


MODEL_CATALOG: List[ModelInfo] = [
    _info("gemini-3-flash", ModelProvider.GEMINI, "gemini-3-flash-preview", "Gemini 3 Flash", "fast", 1000000),
    _info("gemini-3-pro", ModelProvider.GEMINI, "gemini-3-pro-preview", "Gemini 3 Pro", "smart", 2000000),
    _info("claude-3.5-sonnet", ModelProvider.ANTHROPIC, "claude-3-5-sonnet-latest", "Claude 3.5 Sonnet", "balanced", 200000),
    _info("claude-3.5-haiku", ModelProvider.ANTHROPIC, "claude-3-5-haiku-latest", "Claude 3.5 Haiku", "fast", 200000),
    _info("claude-4.5-sonnet", ModelProvider.ANTHROPIC, "claude-4.5-sonnet", "Claude 4.5 Sonnet", "balanced", 200000),
    _info("claude-4.5-haiku", ModelProvider.ANTHROPIC, "claude-4.5-haiku", "Claude 4.5 Haiku", "fast", 200000),
    _info("gpt-4", ModelProvider.OPENAI, "gpt-4", "GPT-4", "smart", 128000),
    _info("grok-beta", ModelProvider.OPENAI, "grok-beta", "Grok Beta", "balanced", 128000, base_url="https://api.x.ai/v1"),
    _info("kimi-k2", ModelProvider.GROQ, "kimi-k2-09-25", "Kimi K2", "fast", 128000),
    _info("qwen3-max", ModelProvider.DASHSCOPE, "qwen3-max", "Qwen3 Max", "smart", 262144, base_url=DASHSCOPE_BASE_URL),
    _info("qwen-plus", ModelProvider.DASHSCOPE, "qwen-plus", "Qwen Plus", "balanced", 131072, base_url=DASHSCOPE_BASE_URL),
    _info("qwen-turbo", ModelProvider.DASHSCOPE, "qwen-turbo", "Qwen Turbo", "fast", 131072, base_url=DASHSCOPE_BASE_URL),
    _info("deepseek-v3.2", ModelProvider.DASHSCOPE, "deepseek-v3.2", "DeepSeek V3.2", "smart", 131072, base_url=DASHSCOPE_BASE_URL),
    _info("glm-4.7", ModelProvider.DASHSCOPE, "glm-4.7", "GLM 4.7", "balanced", 131072, base_url=DASHSCOPE_BASE_URL),
]

MODEL_BINDINGS: Dict[str, ModelBinding] = {info.id: info.binding for info in MODEL_CATALOG}

# 关键词推断：按顺序匹配
_PROVIDER_KEYWORDS = [
    (("claude",), ModelProvider.ANTHROPIC),
    (("gemini",), ModelProvider.GEMINI),
    (("gpt", "grok"), ModelProvider.OPENAI),
    (("llama", "kimi", "mixtral"), ModelProvider.GROQ),
    (("qwen", "deepseek", "glm"), ModelProvider.DASHSCOPE),
]


@dataclass
class ModelResolution:
    """模型解析结果

    Attributes:
        binding: 解析出的绑定；None 表示继承运行时默认模型或无法解析
        known: 是否可解析（inherit、精确匹配或关键词推断成功）
        inferred: 是否由关键词推断得到
    """
    binding: Optional[ModelBinding]
    known: bool
    inferred: bool = False


def infer_provider(model_id: str) -> Optional[ModelProvider]:
    """根据模型标识中的关键词推断提供方"""
    lowered = (model_id or "").lower()
    for keywords, provider in _PROVIDER_KEYWORDS:
        if any(keyword in lowered for keyword in keywords):
            return provider
    return None


def resolve_model(model_id: str) -> ModelResolution:
    """解析模型标识（inherit -> 精确表 -> 关键词推断 -> 无法解析）"""
    if not model_id or model_id == INHERIT_MODEL:
        return ModelResolution(binding=None, known=True)

    binding = MODEL_BINDINGS.get(model_id)
    if binding is not None:
        return ModelResolution(binding=binding, known=True)

    provider = infer_provider(model_id)
    if provider is not None:
        logger.debug("Inferred provider %s for model %s", provider.value, model_id)
        return ModelResolution(
            binding=ModelBinding(
                provider=provider,
                model=model_id,
                base_url=DASHSCOPE_BASE_URL if provider == ModelProvider.DASHSCOPE else None,
            ),
            known=True,
            inferred=True,
        )

    return ModelResolution(binding=None, known=False)


def is_known_model(model_id: str) -> bool:
    return resolve_model(model_id).known


def get_model_info(model_id: str) -> Optional[ModelInfo]:
    for info in MODEL_CATALOG:
        if info.id == model_id:
            return info
    return None


def get_available_models() -> List[str]:
    """可选的模型标识（含 inherit）"""
    return [INHERIT_MODEL] + [info.id for info in MODEL_CATALOG]


def get_models_by_provider() -> Dict[str, List[str]]:
    grouped: Dict[str, List[str]] = {}
    for info in MODEL_CATALOG:
        grouped.setdefault(info.binding.provider.value, []).append(info.id)
    return grouped


def model_supports_tools(model_id: str) -> bool:
    info = get_model_info(model_id)
    return info.supports_tools if info else True
