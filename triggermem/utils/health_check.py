"""
Health check utilities for the engine's external collaborators.
"""

from typing import TYPE_CHECKING, Any, Dict

from .config import config
from .logging_config import get_logger

if TYPE_CHECKING:
    from ..services.memory_engine import MemoryEngine

logger = get_logger(__name__)


def check_health(engine: 'MemoryEngine') -> bool:
    """Check the health of all engine components.

    Returns:
        True if all components are healthy, False otherwise
    """
    health_status = get_health_status(engine)
    all_healthy = all(status.get('healthy', False) for status in health_status.values())

    if all_healthy:
        logger.info('All engine components are healthy')
    else:
        logger.warning('Some engine components are unhealthy')

    return all_healthy


def get_health_status(engine: 'MemoryEngine') -> Dict[str, Any]:
    """Get detailed health status of the storage backend and the oracle.

    Returns:
        Dictionary with health status of each component
    """
    health_status = {}

    try:
        health_status['storage'] = {
            'healthy': engine.store.backend.health_check(),
            'service': type(engine.store.backend).__name__,
            'backend': config.storage.backend
        }
    except Exception as e:
        health_status['storage'] = {'healthy': False, 'service': 'storage', 'error': str(e)}

    try:
        health_status['oracle'] = {
            'healthy': engine.oracle.health_check(),
            'service': type(engine.oracle).__name__,
            'model': config.bedrock_llm.model_id if config.oracle.enabled else None
        }
    except Exception as e:
        health_status['oracle'] = {'healthy': False, 'service': 'oracle', 'error': str(e)}

    return health_status


def get_system_info(engine: 'MemoryEngine') -> Dict[str, Any]:
    """Get system information and configuration.

    Returns:
        Dictionary with system information
    """
    return {
        'service_name': 'TriggerMem',
        'version': '1.0.0',
        'configuration': {
            'oracle_enabled': config.oracle.enabled,
            'bedrock_llm_model': config.bedrock_llm.model_id,
            'storage_backend': config.storage.backend,
            'archive_threshold': engine.config.archive_threshold,
            'active_threshold': engine.config.active_threshold,
        },
        'health_status': get_health_status(engine)
    }
