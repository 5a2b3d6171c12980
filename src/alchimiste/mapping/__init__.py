"""Module de mapping des en-têtes vers les champs canoniques."""

from alchimiste.mapping.mapper import HeaderMapper, mapping_from_suggestions
from alchimiste.mapping.schema import FieldMapping, HeaderMappingResult

__all__ = ["FieldMapping", "HeaderMapper", "HeaderMappingResult", "mapping_from_suggestions"]
