"""Converts inferred schema nodes to Python data classes"""

# pylint: disable=line-too-long

import logging
import os
from typing import Dict, List, Optional

from dtoize.common import PYTHON_RESERVED_WORDS, process_template, safe_identifier, snake
from dtoize.schema_inference import (BOOLEAN, DATETIME, FLOAT, INTEGER, LIST, MAP, STRING, UNTYPED,
                                     FieldSchema, SchemaNode)

logger = logging.getLogger(__name__)

PYTHON_TYPES = {
    STRING: 'str',
    INTEGER: 'int',
    FLOAT: 'float',
    BOOLEAN: 'bool',
    DATETIME: 'datetime.datetime',
    LIST: 'typing.List[typing.Any]',
    MAP: 'typing.Dict[str, typing.Any]',
    UNTYPED: 'typing.Any',
}

# method names of the generated classes
RESERVED_FIELD_NAMES = PYTHON_RESERVED_WORDS | frozenset(['from_dict', 'to_dict', 'data'])


class SchemaToPython:
    """Converts inferred schema nodes to Python data classes"""

    def __init__(self) -> None:
        self.generated_modules: Dict[str, str] = {}

    def class_identifier(self, class_name: str) -> str:
        """Python name of a generated class; every reference to the class goes through here"""
        return safe_identifier(class_name, PYTHON_RESERVED_WORDS)

    def python_type(self, field: FieldSchema) -> str:
        """Maps a field to its Python type annotation, without Optional"""
        if field.is_object:
            return self.class_identifier(field.class_name)
        if field.type == LIST and field.item_type:
            item_type = self.class_identifier(field.class_name) if field.is_object_list else PYTHON_TYPES[field.item_type]
            return f'typing.List[{item_type}]'
        return PYTHON_TYPES[field.type]

    def annotation(self, field: FieldSchema) -> str:
        """Maps a field to its annotation, wrapping nullable types in Optional"""
        python_type = self.python_type(field)
        if field.is_nullable and python_type != 'typing.Any':
            return f'typing.Optional[{python_type}]'
        return python_type

    def field_identifiers(self, fields) -> Dict[str, str]:
        """Assigns each field a unique snake_case identifier"""
        identifiers: Dict[str, str] = {}
        used = set()
        for field in fields:
            identifier = safe_identifier(snake(field.name), RESERVED_FIELD_NAMES)
            candidate = identifier
            counter = 2
            while candidate in used:
                candidate = f'{identifier}_{counter}'
                counter += 1
            used.add(candidate)
            identifiers[field.name] = candidate
        return identifiers

    def decoder(self, field: FieldSchema) -> Optional[str]:
        """Name of the callable converting a non-null JSON value, None for pass-through"""
        if field.is_object:
            return f'{self.class_identifier(field.class_name)}.from_dict'
        if field.type == LIST and field.is_object_list:
            return f'_list_of({self.class_identifier(field.class_name)}.from_dict)'
        if field.type == LIST and field.item_type in (DATETIME, FLOAT):
            return f'_list_of({"_parse_datetime" if field.item_type == DATETIME else "float"})'
        if field.type == DATETIME:
            return '_parse_datetime'
        if field.type == FLOAT:
            return 'float'
        return None

    def from_dict_expression(self, field: FieldSchema) -> str:
        """Python expression reading the field from `data`"""
        key = repr(field.name)
        value = f'data.get({key})' if field.is_optional else f'data[{key}]'
        decoder = self.decoder(field)
        if decoder is None:
            return value
        if field.is_nullable:
            return f'_opt({value}, {decoder})'
        return f'{decoder}({value})'

    def to_dict_expression(self, field: FieldSchema, identifier: str) -> str:
        """Python expression converting the attribute back to JSON data"""
        value = f'self.{identifier}'
        if field.is_object:
            expression = f'{value}.to_dict()'
        elif field.type == LIST and field.is_object_list:
            expression = f'[e.to_dict() for e in {value}]'
        elif field.type == LIST and field.item_type == DATETIME:
            expression = f'[e.isoformat() for e in {value}]'
        elif field.type == DATETIME:
            expression = f'{value}.isoformat()'
        else:
            return value
        if field.is_nullable:
            return f'None if {value} is None else {expression}'
        return expression

    def class_context(self, schema: SchemaNode, is_nested: bool) -> Dict:
        """Template variables for one data class"""
        class_name = self.class_identifier(schema.class_name)
        identifiers = self.field_identifiers(schema.fields)
        fields = [{
            'name': identifiers[field.name],
            'key': repr(field.name),
            'annotation': self.annotation(field),
            'default': ' = None' if field.is_optional else '',
            'from_dict': self.from_dict_expression(field),
            'to_dict': self.to_dict_expression(field, identifiers[field.name]),
            'docstring': f"{identifiers[field.name]} ({field.type_name}{', optional' if field.is_optional else ''})",
        } for field in schema.fields]
        if is_nested:
            docstring = f'Nested model {class_name}.'
        else:
            docstring = f"Data transfer object for the '{schema.collection_name}' collection."
        return {
            'class_name': class_name,
            'docstring': docstring,
            'fields': fields,
        }

    def generate_module(self, schema: SchemaNode) -> str:
        """Generates a Python module with the root class and all its nested classes"""
        logger.info("Generating Python code for %s...", schema.class_name)
        classes = [self.class_context(nested, True) for nested in schema.nested_classes]
        classes.append(self.class_context(schema, False))
        return process_template(
            'schematopython/module.jinja',
            collection_name=schema.collection_name,
            classes=classes,
        )

    def write_module_to_file(self, schema: SchemaNode, output_dir: str) -> str:
        """Generates a module and writes it to `<output_dir>/<snake_case class>.py`"""
        code = self.generate_module(schema)
        if not os.path.exists(output_dir):
            os.makedirs(output_dir, exist_ok=True)
            logger.info("Created directory: %s", output_dir)
        class_name = self.class_identifier(schema.class_name)
        module_name = snake(class_name)
        file_path = os.path.join(output_dir, module_name + '.py')
        with open(file_path, 'w', encoding='utf-8') as file:
            file.write(code)
        self.generated_modules[module_name] = class_name
        logger.info("Written to: %s", file_path)
        return file_path

    def write_init_file(self, output_dir: str) -> str:
        """Writes __init__.py re-exporting the root class of every generated module"""
        init_path = os.path.join(output_dir, '__init__.py')
        modules = sorted(self.generated_modules.items())
        import_statements = [f'from .{module_name} import {class_name}' for module_name, class_name in modules]
        all_statement = [f'"{class_name}"' for _, class_name in modules]
        with open(init_path, 'w', encoding='utf-8') as file:
            file.write('\n'.join(import_statements) + '\n\n__all__ = [' + ', '.join(all_statement) + ']\n')
        logger.info("Generated package file: %s", init_path)
        return init_path


def convert_schemas_to_python(schemas: List[SchemaNode], output_dir: str) -> List[str]:
    """Writes one module per schema node, plus __init__.py when there are several"""
    schema_to_python = SchemaToPython()
    files = [schema_to_python.write_module_to_file(schema, output_dir) for schema in schemas]
    if len(files) > 1:
        files.append(schema_to_python.write_init_file(output_dir))
    return files
