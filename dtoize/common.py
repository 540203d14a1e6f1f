"""
Common utility functions for dtoize.
"""

# pylint: disable=line-too-long

import os
import re
import keyword

import jinja2


def camel(string):
    """
    Convert a string to camelCase from snake_case, kebab-case, camelCase, or PascalCase.

    Args:
        string (str): The string to convert.

    Returns:
        str: The string in camelCase.
    """
    if not string or len(string) == 0:
        return string
    words = []
    if '_' in string or '-' in string:
        # snake_case or kebab-case
        words = [w for w in re.split(r'[_-]', string) if w]
    elif string[0].isupper():
        # PascalCase
        words = re.findall(r'[A-Z]+(?![a-z])|[A-Z][a-z0-9]*', string)
    else:
        # camelCase
        return string
    if not words:
        return string
    return words[0].lower() + ''.join(word[0].upper() + word[1:] for word in words[1:])


def snake(string):
    """
    Convert a string to snake_case from snake_case, kebab-case, camelCase, or PascalCase.
    Acronyms are kept together: 'UserDTO' -> 'user_dto', 'Gamesv2DTO' -> 'gamesv2_dto'.

    Args:
        string (str): The string to convert.

    Returns:
        str: The string in snake_case.
    """
    if not string or len(string) == 0:
        return string
    result = string.replace('-', '_')
    result = re.sub(r'([a-z])([A-Z])', r'\1_\2', result)
    result = re.sub(r'([0-9])([A-Z])', r'\1_\2', result)
    result = re.sub(r'([A-Z])([A-Z][a-z])', r'\1_\2', result)
    return result.lower()


def safe_identifier(name: str, reserved_words, suffix: str = '_', prefix: str = '_') -> str:
    """
    Turn an arbitrary field name into an identifier: characters outside
    [A-Za-z0-9_] become underscores, a leading digit gets the prefix, and
    reserved words get the suffix appended.

    Args:
        name (str): The candidate identifier.
        reserved_words (Collection[str]): Words that cannot be used as-is.
        suffix (str): Appended to reserved words.
        prefix (str): Prepended to names starting with a digit.

    Returns:
        str: A valid identifier.
    """
    val = re.sub(r'[^a-zA-Z0-9_]', '_', name)
    if not val:
        val = '_'
    if re.match(r'^[0-9]', val):
        val = prefix + val
    if val in reserved_words:
        val = val + suffix
    return val


PYTHON_RESERVED_WORDS = frozenset(keyword.kwlist) | frozenset(['self', 'cls'])


def process_template(file_path: str, **kvargs) -> str:
    """
    Process a file as a Jinja2 template with the given object as input.

    Args:
        file_path (str): The path to the template, relative to the package.
        **kvargs: The variables to pass to the template.

    Returns:
        str: The processed template as a string.
    """
    # Load the template environment
    file_dir = os.path.dirname(__file__)
    template_loader = jinja2.FileSystemLoader(searchpath=file_dir)
    template_env = jinja2.Environment(loader=template_loader, keep_trailing_newline=True, trim_blocks=True, lstrip_blocks=True)
    template_env.filters['camel'] = camel
    template_env.filters['snake'] = snake

    # Load the template from the file
    template = template_env.get_template(file_path)

    # Render the template with the object as input
    output = template.render(**kvargs)

    return output
