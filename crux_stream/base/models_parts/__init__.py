"""Data model parts; import from ``crux_stream.base.models``."""

from .decoded_record import DecodedRecord
from .aggregated_state import AggregatedState
from .final_payload import FinalPayload

__all__ = ["DecodedRecord", "AggregatedState", "FinalPayload"]
