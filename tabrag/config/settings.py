
from pydantic_settings import BaseSettings


class Settings(BaseSettings):

    chroma_host: str = "localhost"
    chroma_port: int = 8001
    chroma_collection: str = "tabular_rows"

    llm_base_url: str = "http://localhost:11434/v1"
    llm_model: str = "qwen3:1.7b"
    llm_max_tokens: int = 1024
    llm_temperature: float = 0.3

    # Intent fallback runs on a smaller model with near-greedy sampling
    llm_intent_model: str = "qwen2.5:3b"
    llm_intent_temperature: float = 0.1

    embedding_model: str = "intfloat/multilingual-e5-base"
    embedding_query_prefix: str = "query: "
    embedding_passage_prefix: str = "passage: "
    embed_batch_size: int = 50

    rag_default_limit: int = 5
    rag_superlative_limit: int = 10
    rag_budget_limit: int = 20

    fuzzy_scan_limit: int = 500
    fuzzy_threshold: float = 0.4
    fuzzy_min_match_length: int = 2
    fuzzy_name_field: str = "nama_produk"

    intent_confidence_threshold: float = 0.8

    column_sample_size: int = 100
    numeric_column_ratio: float = 0.8

    log_level: str = "INFO"

    class Config:
        env_file = ".env"
        extra = "ignore"


settings = Settings()
