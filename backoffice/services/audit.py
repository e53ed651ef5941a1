import json
import logging
from typing import Any, Dict, Optional

logger = logging.getLogger('backoffice.audit')


def log_action(*, user: Optional[Any], action: str, object_type: Optional[str]=None, object_id: Optional[Any]=None, detail: Optional[Dict[str, Any]]=None) -> dict:
    event = {
        'user': getattr(user, 'id', None),
        'email': getattr(user, 'email', None),
        'action': action,
        'object_type': object_type, 'object_id': object_id,
        'detail': detail or {},
    }
    logger.info(json.dumps(event, ensure_ascii=False, default=str))
    return event
