"""
GotNodes Extractors
Provider-specific fetch and normalization for each upstream
"""

from .beaconchain_extractor import BeaconchainExtractor
from .glacier_extractor import GlacierExtractor
from .llama_extractor import LlamaExtractor
from .validatorqueue_extractor import ValidatorQueueExtractor

__all__ = [
    'BeaconchainExtractor',
    'GlacierExtractor',
    'LlamaExtractor',
    'ValidatorQueueExtractor'
]
