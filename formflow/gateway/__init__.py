from formflow.gateway.exceptions import GatewayError
from formflow.gateway.factory import GatewayFactory
from formflow.gateway.gateway import TextCompletionGateway
from formflow.gateway.models import ModelConfig, StageModels

__all__ = [
    "GatewayError",
    "GatewayFactory",
    "ModelConfig",
    "StageModels",
    "TextCompletionGateway",
]
