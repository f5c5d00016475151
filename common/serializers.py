from collections.abc import Mapping

from django.http import QueryDict

from common.normalization import lowercase_fields


class LowercaseChoicesMixin:
    """Lowercase enum inputs before choice validation runs."""

    lowercase_choice_fields = ()

    def to_internal_value(self, data):
        if isinstance(data, QueryDict):
            data = data.dict()
        if isinstance(data, Mapping):
            data = lowercase_fields(data, self.lowercase_choice_fields)
        return super().to_internal_value(data)
