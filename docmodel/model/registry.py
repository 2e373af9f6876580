"""Process-wide bookkeeping of model schemas and their compiled storage handles."""
import threading
from logging import getLogger

from ..errors import ConfigurationError

logger = getLogger(__name__)

ERRORS = {
  "need_name_schema": "The model needs a name and a schema before it can be compiled",
  "no_engine": "No storage engine is bound to the registry; call connect(engine) first",
  "no_schema": "The schema is not defined",
}


class SchemaEntry(object):
  """
  Registry entry for one model class that declares fields.

  Created when the class is declared; the storage handle is filled in, once,
  by :any:`ModelRegistry.compile`. Subclasses that declare no fields of their own
  share their ancestor's entry.
  """

  def __init__(self, model, name, schema, parent=None):
    self.model = model
    """The model class that declared the schema."""
    self.name = name
    """Model name; also the discriminator value of this class's records."""
    self.schema = schema
    """Effective :any:`Schema`, parent fields included."""
    self.parent = parent
    """Entry of the nearest schema-bearing ancestor, or None for a root."""
    self.children = []
    """Entries of schema-bearing subclasses."""
    self.handle = None
    """:any:`CollectionHandle` returned by the engine at compile time."""

    if parent is not None:
      parent.children.append(self)

  @property
  def collection(self):
    if self.parent is not None:
      return self.parent.collection
    return self.schema.options["collection"] or self.name

  @property
  def discriminator_key(self):
    return self.schema.discriminator_key

  @property
  def version_key(self):
    return self.schema.version_key

  def is_compiled(self):
    return self.handle is not None

  def is_scoped(self):
    """True if this entry's collection is shared with other classes of its hierarchy."""
    return self.parent is not None or bool(self.children)

  def descendants(self):
    for child in self.children:
      yield child
      for descendant in child.descendants():
        yield descendant

  def find_descendant(self, name):
    """Entry of the descendant (or self) whose records are tagged ``name``."""
    if name == self.name:
      return self
    for descendant in self.descendants():
      if descendant.name == name:
        return descendant
    return None

  def options(self):
    """Options passed to :any:`StorageEngine.register`."""
    return {
      "name": self.name,
      "discriminator_key": self.discriminator_key,
      "version_key": self.version_key,
      "strict": self.schema.strict,
    }

  def __repr__(self):
    return "SchemaEntry(name=%r, collection=%r, compiled=%s)" % (
      self.name, self.collection, self.is_compiled())


class ModelRegistry(object):
  """
  Maps model classes to their :any:`SchemaEntry` and compiles them against a storage engine.

  Entries are never removed. Compilation happens at most once per class, even when
  several threads use a class for the first time together.
  """

  def __init__(self, engine=None):
    self.engine = engine
    """The :any:`StorageEngine` models are compiled against."""
    self._lock = threading.Lock()
    self._entries = {}
    self._compiled_names = {}

  def bind(self, engine):
    """Sets the storage engine. Not allowed once a model has been compiled."""
    with self._lock:
      if self._compiled_names and engine is not self.engine:
        raise ConfigurationError(
          "Models %s are already compiled against another engine" % sorted(self._compiled_names))
      self.engine = engine
    return self

  def add(self, entry):
    self._entries[entry.model] = entry

  def entry_for(self, model):
    return self._entries.get(model)

  def entries(self):
    return list(self._entries.values())

  def compile(self, entry):
    """
    Registers ``entry``'s schema with the engine unless that already happened.

    :return: The entry's :any:`CollectionHandle`.
    """
    if entry.is_compiled():
      return entry.handle

    with self._lock:
      if entry.is_compiled():
        return entry.handle
      if not entry.name or not entry.collection or entry.schema is None:
        raise ConfigurationError(ERRORS["need_name_schema"])
      if self.engine is None:
        raise ConfigurationError(ERRORS["no_engine"])
      if entry.name in self._compiled_names:
        raise ConfigurationError(
          "A model named %r is already compiled (%s); give %s its own __model_name__" %
          (entry.name, self._compiled_names[entry.name].model.__name__, entry.model.__name__))

      entry.handle = self.engine.register(entry.collection, entry.schema.describe(), entry.options())
      self._compiled_names[entry.name] = entry
      logger.debug("Compiled model %s into collection %s", entry.name, entry.collection)

    return entry.handle


default_registry = ModelRegistry()
"""Registry used by model classes that do not set ``__registry__``."""


def connect(engine):
  """Binds ``engine`` to the default registry and returns the registry."""
  return default_registry.bind(engine)
