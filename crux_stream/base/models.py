"""Data model public surface: records, fold state, and final payload."""

from .models_parts.decoded_record import DecodedRecord
from .models_parts.aggregated_state import AggregatedState
from .models_parts.final_payload import FinalPayload

__all__ = ["DecodedRecord", "AggregatedState", "FinalPayload"]
