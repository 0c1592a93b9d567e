from .shell_reader import (
    TransportTriple,
    decode_base64,
    decode_source_text,
    pem_to_spki_der,
    read_transport_triple,
)

__all__ = [
    "TransportTriple",
    "decode_base64",
    "decode_source_text",
    "pem_to_spki_der",
    "read_transport_triple",
]
