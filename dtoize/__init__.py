import importlib

mod = "dtoize"
class LazyLoader:
    """
    Lazy loader for the dtoize functions to speed up startup time.
    """
    def __init__(self, mappings):
        self._modules = {}
        self._mappings = mappings

    def _load_module(self, module_name):
        if module_name not in self._modules:
            self._modules[module_name] = importlib.import_module(module_name)
        return self._modules[module_name]

    def __getattr__(self, item):
        if item in self._mappings:
            module_name, func_name = self._mappings[item]
            module = self._load_module(module_name)
            return getattr(module, func_name)
        else:
            return self._load_module(f"{mod}.{item}")

# Define the functions and their corresponding module paths
_mappings = {
    "analyze": (f"{mod}.schema_inference", "analyze"),
    "field_summary": (f"{mod}.schema_inference", "field_summary"),
    "InputError": (f"{mod}.schema_inference", "InputError"),
    "SchemaNode": (f"{mod}.schema_inference", "SchemaNode"),
    "FieldSchema": (f"{mod}.schema_inference", "FieldSchema"),
    "load_documents": (f"{mod}.jsontodto", "load_documents"),
    "convert_json_to_dart": (f"{mod}.jsontodto", "convert_json_to_dart"),
    "convert_json_to_python": (f"{mod}.jsontodto", "convert_json_to_python"),
    "convert_batch": (f"{mod}.jsontodto", "convert_batch"),
    "convert_schema_to_dart": (f"{mod}.schematodart", "convert_schema_to_dart"),
    "convert_schemas_to_python": (f"{mod}.schematopython", "convert_schemas_to_python"),
}

_lazy_loader = LazyLoader(_mappings)

def __getattr__(name):
    return getattr(_lazy_loader, name)
