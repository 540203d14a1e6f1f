"""Converts inferred schema nodes to Dart model classes"""

# pylint: disable=line-too-long

import logging
import os
import subprocess
from typing import Dict, List

from dtoize.common import camel, process_template, safe_identifier, snake
from dtoize.schema_inference import (BOOLEAN, DATETIME, FLOAT, INTEGER, LIST, MAP, STRING, UNTYPED,
                                     FieldSchema, SchemaNode)

logger = logging.getLogger(__name__)

SERIALIZATION_METHODS = ('manual', 'json_serializable')

DART_TYPES = {
    STRING: 'String',
    INTEGER: 'int',
    FLOAT: 'double',
    BOOLEAN: 'bool',
    DATETIME: 'DateTime',
    LIST: 'List<dynamic>',
    MAP: 'Map<String, dynamic>',
    UNTYPED: 'dynamic',
}

DART_RESERVED_WORDS = frozenset([
    'abstract', 'as', 'assert', 'async', 'await', 'break', 'case', 'catch', 'class', 'const',
    'continue', 'covariant', 'default', 'deferred', 'do', 'dynamic', 'else', 'enum', 'export',
    'extends', 'extension', 'external', 'factory', 'false', 'final', 'finally', 'for', 'Function',
    'get', 'hide', 'if', 'implements', 'import', 'in', 'interface', 'is', 'late', 'library',
    'mixin', 'new', 'null', 'on', 'operator', 'part', 'required', 'rethrow', 'return', 'set',
    'show', 'static', 'super', 'switch', 'sync', 'this', 'throw', 'true', 'try', 'typedef', 'var',
    'void', 'while', 'with', 'yield',
    # members of Object / Equatable and of the generated classes
    'hashCode', 'runtimeType', 'toString', 'noSuchMethod', 'props', 'stringify', 'toJson',
    'copyWith', 'fromJson', 'json',
])

# names a generated class must not shadow
DART_RESERVED_CLASS_NAMES = DART_RESERVED_WORDS | frozenset([
    'String', 'int', 'double', 'num', 'bool', 'DateTime', 'List', 'Map', 'Object', 'Equatable',
    'JsonSerializable', 'JsonKey', 'JsonConverter',
])


def dart_string_literal(value: str) -> str:
    """Quotes a string as a single-quoted Dart literal"""
    escaped = value.replace('\\', '\\\\').replace("'", "\\'").replace('$', '\\$').replace('\n', '\\n')
    return f"'{escaped}'"


def dart_file_name(class_name: str) -> str:
    """File name stem of a generated class: 'UserDTO' -> 'user_dto'"""
    return snake(class_name)


def has_datetime_fields(schema: SchemaNode) -> bool:
    """True when a field of the class holds a DateTime or a list of them"""
    return any(field.type == DATETIME or (field.type == LIST and field.item_type == DATETIME) for field in schema.fields)


class SchemaToDart:
    """Converts inferred schema nodes to Dart model classes"""

    def __init__(self, serialization: str = 'manual') -> None:
        if serialization not in SERIALIZATION_METHODS:
            raise ValueError(f"Unknown serialization method '{serialization}'. Expected one of: {', '.join(SERIALIZATION_METHODS)}")
        self.serialization = serialization

    def class_identifier(self, class_name: str) -> str:
        """Dart name of a generated class; every reference to the class goes through here"""
        identifier = safe_identifier(class_name, DART_RESERVED_CLASS_NAMES, prefix='$')
        # a leading underscore would make the class library-private
        if identifier.startswith('_'):
            identifier = '$' + identifier
        return identifier

    def dart_type(self, field: FieldSchema) -> str:
        """Maps a field to its Dart type, without the nullability marker"""
        if field.is_object:
            return self.class_identifier(field.class_name)
        if field.type == LIST and field.item_type:
            item_type = self.class_identifier(field.class_name) if field.is_object_list else DART_TYPES[field.item_type]
            return f'List<{item_type}>'
        return DART_TYPES[field.type]

    def nullable_dart_type(self, field: FieldSchema) -> str:
        """Maps a field to its Dart type, with '?' for nullable fields"""
        dart_type = self.dart_type(field)
        if field.is_nullable and dart_type != 'dynamic':
            return dart_type + '?'
        return dart_type

    def field_identifiers(self, fields) -> Dict[str, str]:
        """Assigns each field a unique lowerCamelCase Dart identifier"""
        identifiers: Dict[str, str] = {}
        used = set()
        for field in fields:
            identifier = safe_identifier(camel(field.name), DART_RESERVED_WORDS)
            candidate = identifier
            counter = 2
            while candidate in used:
                candidate = f'{identifier}{counter}'
                counter += 1
            used.add(candidate)
            identifiers[field.name] = candidate
        return identifiers

    def decode_value(self, type_tag: str, class_name: str | None, value: str) -> str:
        """Dart expression converting a non-null JSON value to the field's type"""
        if class_name:
            return f'{class_name}.fromJson({value} as Map<String, dynamic>)'
        if type_tag == STRING:
            return f'{value} as String'
        if type_tag == INTEGER:
            return f'({value} as num).toInt()'
        if type_tag == FLOAT:
            return f'({value} as num).toDouble()'
        if type_tag == BOOLEAN:
            return f'{value} as bool'
        if type_tag == DATETIME:
            return f'_parseDateTime({value})'
        if type_tag == LIST:
            return f'List<dynamic>.from({value} as List)'
        if type_tag == MAP:
            return f'Map<String, dynamic>.from({value} as Map)'
        return value

    def from_json_expression(self, field: FieldSchema) -> str:
        """Dart expression reading the field from the `json` map"""
        value = f'json[{dart_string_literal(field.name)}]'
        if field.is_object:
            expression = self.decode_value(MAP, self.class_identifier(field.class_name), value)
        elif field.type == LIST and field.item_type:
            item_class = self.class_identifier(field.class_name) if field.is_object_list else None
            expression = f'({value} as List).map((e) => {self.decode_value(field.item_type, item_class, "e")}).toList()'
        else:
            expression = self.decode_value(field.type, None, value)
        if expression == value or not field.is_nullable:
            return expression
        return f'{value} == null ? null : {expression}'

    def to_json_expression(self, field: FieldSchema, identifier: str) -> str:
        """Dart expression writing the field into the JSON map"""
        access = '?.' if field.is_nullable else '.'
        if field.is_object:
            return f'{identifier}{access}toJson()'
        if field.type == LIST and field.is_object_list:
            return f'{identifier}{access}map((e) => e.toJson()).toList()'
        if field.type == LIST and field.item_type == DATETIME:
            return f'{identifier}{access}map((e) => e.toIso8601String()).toList()'
        if field.type == DATETIME:
            return f'{identifier}{access}toIso8601String()'
        return identifier

    def field_context(self, field: FieldSchema, identifier: str) -> Dict:
        """Template variables for one field"""
        dart_type = self.nullable_dart_type(field)
        return {
            'name': identifier,
            'key': dart_string_literal(field.name),
            'needs_json_key': identifier != field.name,
            'type': dart_type,
            'param_type': dart_type if dart_type == 'dynamic' or dart_type.endswith('?') else dart_type + '?',
            'required': not field.is_nullable,
            'from_json': self.from_json_expression(field),
            'to_json': self.to_json_expression(field, identifier),
        }

    def generate_class(self, schema: SchemaNode, is_nested: bool) -> str:
        """Generates the Dart source of one class"""
        identifiers = self.field_identifiers(schema.fields)
        fields = [self.field_context(field, identifiers[field.name]) for field in schema.fields]
        return process_template(
            f'schematodart/class_{self.serialization}.jinja',
            class_name=self.class_identifier(schema.class_name),
            collection_name=schema.collection_name,
            is_nested=is_nested,
            has_datetime=has_datetime_fields(schema),
            fields=fields,
        )

    def generate_imports(self, file_name: str) -> str:
        """Generates the import block of a model file"""
        if self.serialization == 'json_serializable':
            return f"import 'package:json_annotation/json_annotation.dart';\n\npart '{file_name}.g.dart';\n\n"
        return "import 'package:equatable/equatable.dart';\n\n"

    def generate_model(self, schema: SchemaNode) -> str:
        """Generates a complete Dart model file: imports, nested classes, root class"""
        logger.info("Generating Dart code for %s (%s)...", schema.class_name, self.serialization)
        code = self.generate_imports(dart_file_name(schema.class_name))
        if any(has_datetime_fields(node) for node in [*schema.nested_classes, schema]):
            code += process_template('schematodart/datetime_helper.jinja', serialization=self.serialization) + '\n'
        if schema.nested_classes:
            code += '\n\n'.join(self.generate_class(nested, True).rstrip('\n') for nested in schema.nested_classes)
            code += '\n\n'
        code += self.generate_class(schema, False)
        logger.info("Generated %s model", schema.class_name)
        if schema.nested_classes:
            logger.info("  with %d nested class(es)", len(schema.nested_classes))
        return code

    def write_model_to_file(self, schema: SchemaNode, output_dir: str) -> str:
        """Generates a model and writes it to `<output_dir>/<snake_case class>.dart`"""
        code = self.generate_model(schema)
        if not os.path.exists(output_dir):
            os.makedirs(output_dir, exist_ok=True)
            logger.info("Created directory: %s", output_dir)
        file_path = os.path.join(output_dir, dart_file_name(schema.class_name) + '.dart')
        with open(file_path, 'w', encoding='utf-8') as file:
            file.write(code)
        logger.info("Written to: %s", file_path)
        return file_path

    def generate_barrel_file(self, output_dir: str, model_files: List[str]) -> str:
        """Writes models.dart exporting all generated model files"""
        barrel_path = os.path.join(output_dir, 'models.dart')
        exports = '\n'.join(f"export '{os.path.basename(file)}';" for file in model_files)
        with open(barrel_path, 'w', encoding='utf-8') as file:
            file.write(f'// Generated barrel file for models\n{exports}\n')
        logger.info("Generated barrel file: %s", barrel_path)
        return barrel_path


def format_dart_sources(directory: str) -> bool:
    """Runs `dart format .` in the directory. Failures are logged, not raised."""
    logger.info("Formatting: %s", directory)
    try:
        result = subprocess.run(['dart', 'format', '.'], cwd=directory, capture_output=True, text=True, check=False)
    except OSError as e:
        logger.warning("Could not format %s: dart command not found. Make sure the Dart SDK is installed: %s", directory, e)
        return False
    if result.returncode != 0:
        logger.warning("Could not format %s: %s", directory, (result.stderr or 'dart format failed').strip())
        return False
    logger.info("Formatted: %s", directory)
    return True


def convert_schema_to_dart(schema: SchemaNode, output_dir: str, serialization: str = 'manual') -> str:
    """Writes the Dart model file of a schema node and returns its path"""
    return SchemaToDart(serialization).write_model_to_file(schema, output_dir)
