from docseal.finalization.pipeline import FinalizeContext, FinalizeStep
from docseal.finalization.protocol import FinalizationProtocol, build_finalization_protocol

__all__ = [
    "FinalizationProtocol",
    "FinalizeContext",
    "FinalizeStep",
    "build_finalization_protocol",
]
