import logging

logger = logging.getLogger("audit")


def get_request_id(request):
    return getattr(request, "request_id", None) or request.headers.get("X-Request-ID")


def log_mutation(request, *, action, entity, entity_id=None, **fields):
    """Write one structured audit line for a create/update/delete."""
    user = getattr(request, "user", None)
    logger.info(
        f"{entity}_{action}",
        extra={
            "entity_id": str(entity_id) if entity_id is not None else None,
            "user_id": str(user.id) if user is not None and user.is_authenticated else None,
            "request_id": get_request_id(request),
            "path": request.path,
            "method": request.method,
            **fields,
        },
    )


class LoggedMutationMixin:
    """Audit-log every create/update/delete a ModelViewSet performs."""

    log_entity = None

    def _log(self, action, instance_id):
        log_mutation(self.request, action=action, entity=self.log_entity, entity_id=instance_id)

    def perform_create(self, serializer):
        instance = serializer.save()
        self._log("created", instance.id)

    def perform_update(self, serializer):
        instance = serializer.save()
        self._log("updated", instance.id)

    def perform_destroy(self, instance):
        instance_id = instance.id
        instance.delete()
        self._log("deleted", instance_id)
