"""Milvus Schemas — face-embedding record insert body.

Invariants:
    - registered_face_id, gender, age, embedding, user_id are all required
      (a single top-level 400 names them, mirroring the collection schema)
    - embedding is a list of numbers
"""

from typing import Any

from pydantic import BaseModel

from cctv_api.core.errors import BusinessRuleError
from cctv_api.schemas.common import validate_form

REQUIRED_FIELDS = ("registered_face_id", "gender", "age", "embedding", "user_id")


class FaceRecordCreate(BaseModel):
    registered_face_id: str | int
    gender: str
    age: int | float | str
    embedding: list[float]
    user_id: int | str

    @classmethod
    def from_body(cls, body: dict[str, Any]) -> "FaceRecordCreate":
        if any(body.get(f) in (None, "") for f in REQUIRED_FIELDS):
            raise BusinessRuleError(
                "All fields are required: " + ", ".join(REQUIRED_FIELDS),
            )
        embedding = body["embedding"]
        if not isinstance(embedding, list) or not all(
            isinstance(x, (int, float)) and not isinstance(x, bool) for x in embedding
        ):
            raise BusinessRuleError("Embedding must be an array of numbers")
        return validate_form(cls, body)

    def to_record(self) -> dict:
        return self.model_dump()
