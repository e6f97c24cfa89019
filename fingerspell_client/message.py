"""
Classifier wire format.

Request body:  {"landmark": [[dx, dy, dz], ...]}
Response body: {"prediction": [[p0, p1, ..., p39]]}
"""

import json
from dataclasses import asdict, dataclass
from typing import Any, List

import numpy as np

from .exceptions import MalformedResponseError


@dataclass
class PredictRequest:
    """
    Request sent to the classifier.

    Attributes:
        landmark: Normalized offset vectors, one [x, y, z] per landmark after the first
    """
    landmark: List[List[float]]

    @classmethod
    def from_features(cls, features: np.ndarray) -> 'PredictRequest':
        """Build a request from a normalizer feature vector."""
        arr = np.asarray(features, dtype=np.float64).reshape(-1, 3)
        return cls(landmark=arr.tolist())

    def to_dict(self) -> dict:
        return asdict(self)

    def to_json(self) -> str:
        """Serialize to JSON string."""
        return json.dumps(self.to_dict())


@dataclass
class PredictResponse:
    """
    Decoded classifier response.

    Attributes:
        prediction: Probability row for the single submitted sample
    """
    prediction: List[Any]

    @classmethod
    def from_dict(cls, d: Any) -> 'PredictResponse':
        """
        Decode a parsed JSON body.

        Raises:
            MalformedResponseError: Body is not {"prediction": [[...], ...]}
        """
        if not isinstance(d, dict) or "prediction" not in d:
            raise MalformedResponseError("Response has no 'prediction' field")

        rows = d["prediction"]
        if not isinstance(rows, list) or not rows:
            raise MalformedResponseError("'prediction' must be a non-empty list")

        row = rows[0]
        if not isinstance(row, list):
            raise MalformedResponseError("'prediction' must be a list of probability rows")

        return cls(prediction=row)

    @classmethod
    def from_json(cls, data: str) -> 'PredictResponse':
        """Deserialize from JSON string."""
        try:
            d = json.loads(data)
        except ValueError as e:
            raise MalformedResponseError(f"Response is not valid JSON: {e}") from e
        return cls.from_dict(d)
