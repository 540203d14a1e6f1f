"""Naming strategy for inferred classes.

Collection names and field names are turned into class names here. The
plural handling is a best-effort string heuristic, not a linguistic
pluralizer; everything that needs a singular form goes through
`singularize` so it can be replaced in one place.
"""

import re

DTO_SUFFIX = 'DTO'

# '-' and '_', plus anything else that cannot appear in an identifier
_SEPARATORS = re.compile(r'[\W_]+')


def pascal_segment(name: str) -> str:
    """Converts a field name into a PascalCase segment.

    The name is split on '-', '_' and other non-word characters such as
    spaces or dots; each part gets an upper-case first letter and a
    lower-case remainder. 'user_id' -> 'UserId', 'createdAt' -> 'Createdat',
    'home address' -> 'HomeAddress'.
    """
    return ''.join(part[0].upper() + part[1:].lower()
                   for part in _SEPARATORS.split(name) if part)


def singularize(word: str) -> str:
    """Heuristic singular form: 'categories' -> 'category', 'boxes' -> 'box',
    'items' -> 'item'. Words that don't match any rule are returned as-is."""
    if word.endswith('ies'):
        return word[:-3] + 'y'
    if word.endswith('es'):
        return word[:-2]
    if word.endswith('s') and len(word) > 1:
        return word[:-1]
    return word


def class_name(collection_name: str) -> str:
    """Converts a collection name into a DTO class name ('users' -> 'UserDTO')."""
    singular = collection_name
    if collection_name.endswith('s') and len(collection_name) > 1:
        singular = collection_name[:-1]
    return pascal_segment(singular) + DTO_SUFFIX


def strip_suffix(name: str) -> str:
    """Removes the DTO suffix from a class name, if present. 'DTO' -> ''."""
    if name.endswith(DTO_SUFFIX):
        return name[:-len(DTO_SUFFIX)]
    return name


def nested_class_name(parent_class_name: str, field_name: str, singular: bool = False) -> str:
    """Derives the class name of an embedded object or array element.

    Args:
        parent_class_name: Class name of the record owning the field
        field_name: Name of the field holding the nested payloads
        singular: Singularize the field name (array-of-object elements)

    Returns:
        The parent class name without its DTO suffix followed by the
        PascalCase field name.
    """
    if singular:
        field_name = singularize(field_name)
    return strip_suffix(parent_class_name) + pascal_segment(field_name)
