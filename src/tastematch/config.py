"""Configuration — fusion weights, tuning constants, model parameters."""

from __future__ import annotations

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings


class ItemWeights(BaseModel):
    vector: float = Field(default=0.55, ge=0.0, le=1.0)
    collaborative: float = Field(default=0.25, ge=0.0, le=1.0)
    traits: float = Field(default=0.20, ge=0.0, le=1.0)
    # Share of the collaborative weight handed to the vector signal when no
    # CF data exists; the remainder goes to traits.
    cf_to_vector_share: float = Field(default=0.6, ge=0.0, le=1.0)

    def without_collaborative(self) -> tuple[float, float]:
        vector = self.vector + self.collaborative * self.cf_to_vector_share
        traits = self.traits + self.collaborative * (1.0 - self.cf_to_vector_share)
        return vector, traits


class SocialWeights(BaseModel):
    vector: float = Field(default=0.60, ge=0.0, le=1.0)
    traits: float = Field(default=0.40, ge=0.0, le=1.0)


class EventWeights(BaseModel):
    vector: float = Field(default=0.50, ge=0.0, le=1.0)
    traits: float = Field(default=0.25, ge=0.0, le=1.0)
    geo: float = Field(default=0.25, ge=0.0, le=1.0)


class EventEnjoymentWeights(BaseModel):
    vector: float = Field(default=0.60, ge=0.0, le=1.0)
    traits: float = Field(default=0.40, ge=0.0, le=1.0)


class HobbyWeights(BaseModel):
    vector: float = Field(default=0.55, ge=0.0, le=1.0)
    traits: float = Field(default=0.45, ge=0.0, le=1.0)


class Settings(BaseSettings):
    anthropic_api_key: str = ""
    anthropic_model: str = "claude-sonnet-4-20250514"
    anthropic_fast_model: str = "claude-3-haiku-20240307"

    item_weights: ItemWeights = ItemWeights()
    social_weights: SocialWeights = SocialWeights()
    event_weights: EventWeights = EventWeights()
    event_enjoyment_weights: EventEnjoymentWeights = EventEnjoymentWeights()
    hobby_weights: HobbyWeights = HobbyWeights()

    rms_amplification: float = 1.4
    score_floor: int = 15
    score_ceiling: int = 100

    embedding_model: str = "all-MiniLM-L6-v2"
    embedding_dim: int = 384
    embedding_batch_size: int = 32

    cf_top_n: int = 20
    cf_similarity_threshold: float = 0.3
    cf_max_candidates: int = 50
    neutral_cf_score: int = 50

    profile_history_limit: int = 100

    top_k: int = 12

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


settings = Settings()
