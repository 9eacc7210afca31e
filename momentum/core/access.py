"""Ownership-checked template lookup shared by the stateful core services."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from momentum.errors import AuthorizationError, NotFoundError

if TYPE_CHECKING:
    from momentum.data.models import TaskTemplate
    from momentum.ports.store_port import TaskStore

logger = logging.getLogger(__name__)


def fetch_owned_template(store: TaskStore, user_id: str, template_id: str) -> TaskTemplate:
    """Load a template the acting user owns.

    Raises NotFoundError for a missing id and AuthorizationError when the
    template belongs to someone else.
    """
    template = store.get_template(template_id)
    if template is None:
        raise NotFoundError(f"Task template {template_id} not found")
    if template.user_id != str(user_id):
        logger.warning(
            "User %s attempted to access template %s owned by another user",
            user_id, template_id,
        )
        raise AuthorizationError(f"Task template {template_id} does not belong to you")
    return template
