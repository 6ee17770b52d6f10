"""
Configuration management for the oracle, storage and scoring settings.
"""

import os
from dataclasses import dataclass

from dotenv import load_dotenv

load_dotenv()


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ('1', 'true', 'yes', 'on')


@dataclass
class BedrockLLMConfig:
    """Configuration for Amazon Bedrock LLM service."""
    region: str
    model_id: str
    max_tokens: int
    temperature: float
    retry_attempts: int
    retry_delay: float


@dataclass
class OracleConfig:
    """Configuration for the text-analysis oracle."""
    enabled: bool
    similarity_max_tokens: int
    extraction_max_tokens: int


@dataclass
class StorageConfig:
    """Configuration for durable key-value storage."""
    backend: str
    path: str
    triggers_key: str
    memories_key: str
    last_decay_key: str
    legacy_memories_key: str


@dataclass
class ScoringConfig:
    """Scoring and matching constants for the trigger engine."""
    new_trigger: int = 50
    usage_bonus: int = 5
    decay_per_day: int = 2
    active_threshold: int = 50
    archive_threshold: int = 20
    similarity_threshold: float = 0.7
    semantic_candidates: int = 5
    recent_context_memories: int = 5
    recent_importance_min: int = 7
    max_extracted_triggers: int = 5


@dataclass
class MCPConfig:
    """Configuration for MCP interface."""
    transport: str
    host: str
    port: int


@dataclass
class AppConfig:
    """Main application configuration."""
    environment: str
    log_level: str
    bedrock_llm: BedrockLLMConfig
    oracle: OracleConfig
    storage: StorageConfig
    scoring: ScoringConfig
    mcp: MCPConfig


def load_config() -> AppConfig:
    """Load configuration from environment variables with defaults."""
    environment = os.getenv('ENVIRONMENT', 'development')

    # Bedrock configuration
    bedrock_llm_config = BedrockLLMConfig(region=os.getenv('BEDROCK_LLM_AWS_REGION', 'us-east-1'),
                                          model_id=os.getenv('BEDROCK_LLM_MODEL_ID', 'anthropic.claude-3-sonnet-20240229-v1:0'),
                                          max_tokens=int(os.getenv('BEDROCK_LLM_MAX_TOKENS', '512')),
                                          temperature=float(os.getenv('BEDROCK_LLM_TEMPERATURE', '0.0')),
                                          retry_attempts=int(os.getenv('BEDROCK_LLM_RETRY_ATTEMPTS', '3')),
                                          retry_delay=float(os.getenv('BEDROCK_LLM_RETRY_DELAY', '1.0')))

    oracle_config = OracleConfig(enabled=_env_bool('ORACLE_ENABLED', 'true'),
                                 similarity_max_tokens=int(os.getenv('ORACLE_SIMILARITY_MAX_TOKENS', '10')),
                                 extraction_max_tokens=int(os.getenv('ORACLE_EXTRACTION_MAX_TOKENS', '512')))

    # Storage configuration
    storage_config = StorageConfig(backend=os.getenv('STORAGE_BACKEND', 'file'),
                                   path=os.getenv('STORAGE_PATH', './data'),
                                   triggers_key=os.getenv('STORAGE_TRIGGERS_KEY', 'triggers_v2'),
                                   memories_key=os.getenv('STORAGE_MEMORIES_KEY', 'memories_v2'),
                                   last_decay_key=os.getenv('STORAGE_LAST_DECAY_KEY', 'last_decay'),
                                   legacy_memories_key=os.getenv('STORAGE_LEGACY_MEMORIES_KEY', 'memories'))

    # Scoring configuration
    scoring_config = ScoringConfig(new_trigger=int(os.getenv('SCORE_NEW_TRIGGER', '50')),
                                   usage_bonus=int(os.getenv('SCORE_USAGE_BONUS', '5')),
                                   decay_per_day=int(os.getenv('SCORE_DECAY_PER_DAY', '2')),
                                   active_threshold=int(os.getenv('SCORE_ACTIVE_THRESHOLD', '50')),
                                   archive_threshold=int(os.getenv('SCORE_ARCHIVE_THRESHOLD', '20')),
                                   similarity_threshold=float(os.getenv('SIMILARITY_THRESHOLD', '0.7')),
                                   semantic_candidates=int(os.getenv('SEMANTIC_CANDIDATES', '5')),
                                   recent_context_memories=int(os.getenv('RECENT_CONTEXT_MEMORIES', '5')),
                                   recent_importance_min=int(os.getenv('RECENT_IMPORTANCE_MIN', '7')),
                                   max_extracted_triggers=int(os.getenv('MAX_EXTRACTED_TRIGGERS', '5')))

    # MCP configuration
    mcp_config = MCPConfig(transport=os.getenv('MCP_TRANSPORT', 'sse'),
                           host=os.getenv('MCP_HOST', '127.0.0.1'),
                           port=int(os.getenv('MCP_PORT', '8000')))

    return AppConfig(environment=environment,
                     log_level=os.getenv('LOG_LEVEL', 'INFO'),
                     bedrock_llm=bedrock_llm_config,
                     oracle=oracle_config,
                     storage=storage_config,
                     scoring=scoring_config,
                     mcp=mcp_config)


# Global configuration instance
config = load_config()
