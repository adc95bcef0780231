import yaml, json, os, logging, typing as t
from functools import lru_cache
from pathlib import Path
from types import MappingProxyType

from ..filters import OPERATOR_VALUES

log = logging.getLogger("filters.registry")

DEFAULT_FIELDS_PATH = Path(__file__).resolve().parent.parent / "config" / "filter_fields.yaml"
FIELDS_PATH = Path(os.getenv("FILTER_FIELDS_FILE", str(DEFAULT_FIELDS_PATH)))
DEFAULT_SOFT_DELETE_FIELD = "isDeleted"


class CapabilityMatrix:
    """
    Read-only whitelist of entity -> field -> allowed operators, plus the
    per-entity free-text search fields. Lookups fail closed.
    """

    def __init__(
        self,
        fields: t.Mapping[str, t.Mapping[str, t.Iterable[str]]],
        search_fields: t.Optional[t.Mapping[str, t.Iterable[str]]] = None,
        soft_delete_field: str = DEFAULT_SOFT_DELETE_FIELD,
        metadata: t.Optional[t.Mapping[str, t.Mapping[str, t.Iterable[str]]]] = None,
    ):
        frozen: dict[str, t.Mapping[str, frozenset[str]]] = {}
        for entity, cols in fields.items():
            per_field: dict[str, frozenset[str]] = {}
            for name, ops in cols.items():
                unknown = set(ops) - OPERATOR_VALUES
                if unknown:
                    raise RuntimeError(
                        f"Unknown operators for {entity}.{name}: {', '.join(sorted(unknown))}"
                    )
                per_field[name] = frozenset(ops)
            frozen[entity] = MappingProxyType(per_field)
        self._fields = MappingProxyType(frozen)
        self._search = MappingProxyType(
            {e: tuple(v) for e, v in (search_fields or {}).items()}
        )
        self._metadata = MappingProxyType({
            e: MappingProxyType({k: tuple(vals) for k, vals in m.items()})
            for e, m in (metadata or {}).items()
        })
        self.soft_delete_field = soft_delete_field

    @property
    def entities(self) -> list[str]:
        return list(self._fields.keys())

    def has_entity(self, entity: str) -> bool:
        return entity in self._fields

    def fields_for(self, entity: str) -> t.Mapping[str, frozenset[str]]:
        return self._fields.get(entity, MappingProxyType({}))

    def operators_for(self, entity: str, field: str) -> frozenset[str]:
        return self.fields_for(entity).get(field, frozenset())

    def is_allowed(self, entity: str, field: str, operator: str) -> bool:
        return str(operator) in self.operators_for(entity, field)

    def search_fields(self, entity: str) -> tuple[str, ...]:
        return self._search.get(entity, ())

    def metadata_for(self, entity: str) -> t.Mapping[str, tuple[str, ...]]:
        return self._metadata.get(entity, MappingProxyType({}))

    def to_dict(self, entity: t.Optional[str] = None) -> dict[str, dict[str, list[str]]]:
        """Operators per field, in a stable order, for one entity or all of them."""
        order = sorted(OPERATOR_VALUES)
        names = [entity] if entity is not None else self.entities
        return {
            e: {f: [op for op in order if op in ops] for f, ops in self.fields_for(e).items()}
            for e in names
        }


def load_capability_matrix(path: t.Optional[Path] = None) -> CapabilityMatrix:
    path = Path(path) if path is not None else FIELDS_PATH
    if not path.exists():
        raise RuntimeError(f"Filter field mapping file not found: {path}")
    with path.open("r", encoding="utf-8") as f:
        if path.suffix.lower() in (".yaml", ".yml"):
            cfg = yaml.safe_load(f)
        else:
            cfg = json.load(f)

    ents = (cfg or {}).get("entities", {})
    if not isinstance(ents, dict) or not ents:
        raise RuntimeError(f"No entities defined in {path}")

    fields: dict[str, dict[str, list[str]]] = {}
    search: dict[str, list[str]] = {}
    metadata: dict[str, dict[str, list[str]]] = {}
    for name, v in ents.items():
        if not isinstance(v, dict) or not isinstance(v.get("fields"), dict):
            raise RuntimeError(f"Bad entity mapping for {name}: {v}")
        fields[name] = {str(k): list(ops or []) for k, ops in v["fields"].items()}
        search[name] = [str(s) for s in v.get("searchFields", [])]
        meta = v.get("metadata") or {}
        if not isinstance(meta, dict):
            raise RuntimeError(f"Bad metadata for {name}: {meta}")
        metadata[name] = {str(k): [str(x) for x in (vals or [])] for k, vals in meta.items()}

    matrix = CapabilityMatrix(
        fields,
        search,
        soft_delete_field=str(cfg.get("softDeleteField", DEFAULT_SOFT_DELETE_FIELD)),
        metadata=metadata,
    )
    log.info("Loaded filter capabilities for %d entities from %s", len(fields), path)
    return matrix


@lru_cache(maxsize=1)
def get_capability_matrix() -> CapabilityMatrix:
    return load_capability_matrix()
