"""Infers schemas from JSON documents and generates data transfer objects.

This module provides:
- json2dart: Generate Dart models from sampled JSON documents
- json2py: Generate Python data classes from sampled JSON documents
- batch: Run either conversion for each collection of a YAML batch file
"""

import json
import logging
import os
from typing import Any, List, Optional

from dtoize.config import BatchConfig, load_batch_config, resolve_settings
from dtoize.schema_inference import SchemaNode, analyze
from dtoize.schematodart import SchemaToDart, format_dart_sources
from dtoize.schematopython import convert_schemas_to_python

logger = logging.getLogger(__name__)


def load_documents(input_files: List[str], sample_size: int = 0) -> List[Any]:
    """Loads sampled documents from JSON files.

    Handles both single JSON documents and JSON Lines (JSONL) files.
    Arrays at the root level are flattened into individual documents.

    Args:
        input_files: List of file paths
        sample_size: Maximum documents to load (0 = all)

    Returns:
        List of parsed JSON documents
    """
    values: List[Any] = []

    for file_path in input_files:
        if sample_size > 0 and len(values) >= sample_size:
            break

        with open(file_path, 'r', encoding='utf-8') as f:
            content = f.read().strip()

        if not content:
            logger.warning("Skipping empty file: %s", file_path)
            continue

        # Try parsing as a single JSON document first
        try:
            data = json.loads(content)
            if isinstance(data, list):
                # Root-level array: each element is a separate document
                for item in data:
                    values.append(item)
                    if sample_size > 0 and len(values) >= sample_size:
                        break
            else:
                values.append(data)
            continue
        except json.JSONDecodeError:
            pass

        # Try parsing as JSON Lines (JSONL)
        for line_number, line in enumerate(content.split('\n'), start=1):
            line = line.strip()
            if not line:
                continue
            try:
                values.append(json.loads(line))
            except json.JSONDecodeError as e:
                logger.warning("Skipping unparsable line %d of %s: %s", line_number, file_path, e)
                continue
            if sample_size > 0 and len(values) >= sample_size:
                break

    return values


def collection_name_from_files(input_files: List[str]) -> str:
    """Derives a collection name from the first input file ('data/users.jsonl' -> 'users')."""
    if not input_files:
        raise ValueError("At least one input file is required")
    return os.path.splitext(os.path.basename(input_files[0]))[0]


def infer_schema_from_files(input_files: List[str], collection: str, sample_size: int) -> Optional[SchemaNode]:
    """Loads documents and infers their schema; None when the files hold no documents."""
    documents = load_documents(input_files, sample_size)
    if not documents:
        logger.warning("No documents found in: %s", collection)
        return None
    return analyze(collection, documents)


def write_dart_models(schemas: List[SchemaNode], output_dir: str, serialization: str, format_code: bool) -> List[str]:
    """Writes one Dart file per schema, a barrel file for several, and formats the directory."""
    generator = SchemaToDart(serialization)
    files = [generator.write_model_to_file(schema, output_dir) for schema in schemas]
    if len(files) > 1:
        files.append(generator.generate_barrel_file(output_dir, files))
    if files and format_code:
        format_dart_sources(output_dir)
    return files


def convert_json_to_dart(
    input_files: List[str],
    output_dir: Optional[str] = None,
    collection: Optional[str] = None,
    sample_size: Optional[int] = None,
    serialization: Optional[str] = None,
    format_code: Optional[bool] = None,
    config_path: Optional[str] = None
) -> List[str]:
    """Infers a schema from JSON files and writes the Dart model.

    Args:
        input_files: JSON or JSONL files holding the sampled documents
        output_dir: Directory for the generated Dart file
        collection: Collection name; defaults to the first file's name
        sample_size: Maximum number of documents to sample
        serialization: 'manual' or 'json_serializable'
        format_code: Run `dart format` on the output directory
        config_path: Defaults file; searched in the working directory if omitted

    Returns:
        Paths of the written files (empty when no documents were found).
    """
    collection = collection or collection_name_from_files(input_files)
    settings = resolve_settings(output_dir, sample_size, serialization, format_code, config_path)
    schema = infer_schema_from_files(input_files, collection, settings.sample_size)
    if schema is None:
        return []
    return write_dart_models([schema], os.path.abspath(settings.output_dir), settings.serialization, settings.format_code)


def convert_json_to_python(
    input_files: List[str],
    output_dir: Optional[str] = None,
    collection: Optional[str] = None,
    sample_size: Optional[int] = None,
    config_path: Optional[str] = None
) -> List[str]:
    """Infers a schema from JSON files and writes the Python data class module.

    Args:
        input_files: JSON or JSONL files holding the sampled documents
        output_dir: Directory for the generated module
        collection: Collection name; defaults to the first file's name
        sample_size: Maximum number of documents to sample
        config_path: Defaults file; searched in the working directory if omitted

    Returns:
        Paths of the written files (empty when no documents were found).
    """
    collection = collection or collection_name_from_files(input_files)
    settings = resolve_settings(output_dir, sample_size, config_path=config_path)
    schema = infer_schema_from_files(input_files, collection, settings.sample_size)
    if schema is None:
        return []
    return convert_schemas_to_python([schema], os.path.abspath(settings.output_dir))


def run_batch(batch: BatchConfig) -> List[str]:
    """Converts every collection of a parsed batch file.

    Collections that share an output directory are written together, so the
    barrel file (models.dart or __init__.py) covers all of them.
    """
    schemas_by_output = {}
    for collection_config in batch.collections:
        logger.info("Processing: %s", collection_config.name)
        schema = infer_schema_from_files(collection_config.input_files, collection_config.name, collection_config.sample_size)
        if schema is None:
            continue
        schemas_by_output.setdefault(collection_config.output, []).append(schema)

    files: List[str] = []
    for output_dir, schemas in schemas_by_output.items():
        if batch.language == 'python':
            files.extend(convert_schemas_to_python(schemas, output_dir))
        else:
            files.extend(write_dart_models(schemas, output_dir, batch.serialization, batch.format_code))
    total = sum(len(schemas) for schemas in schemas_by_output.values())
    logger.info("Successfully generated %d model(s) from %d collection(s)", total, len(batch.collections))
    return files


def convert_batch(config_path: str = 'dtoize.yaml') -> List[str]:
    """Converts all collections listed in a YAML batch file.

    Raises:
        ConfigError: If the batch file is missing or invalid.
    """
    return run_batch(load_batch_config(config_path))
