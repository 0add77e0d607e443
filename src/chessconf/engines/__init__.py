"""Engine list, selection pointer and per-engine UCI option namespaces."""

from chessconf.engines.registry import (
    EngineDescriptor,
    EngineRegistry,
    decode_engine_list,
    encode_engine_list,
    uci_options_key,
)

__all__ = [
    "EngineDescriptor",
    "EngineRegistry",
    "decode_engine_list",
    "encode_engine_list",
    "uci_options_key",
]
