import threading
from time import sleep

from docmodel.engine.memory import MemoryEngine
from docmodel.errors import ConfigurationError
from docmodel.model.field import Field
from docmodel.model.model import Model
from docmodel.model.registry import ModelRegistry, connect, default_registry

from tests.helpers import DocModelTestCase


class _SlowEngine(MemoryEngine):
  def register(self, collection, schema, options):
    sleep(0.01)
    return super(_SlowEngine, self).register(collection, schema, options)


class RegistryTest(DocModelTestCase):
  def setUp(self):
    super(RegistryTest, self).setUp()
    registry = self.registry

    class Animal(Model):
      __registry__ = registry
      __model_name__ = "Animal"
      name = Field(str)

    self.Animal = Animal

  def test_compile_is_idempotent(self):
    self.assertFalse(self.Animal.is_compiled())
    self.assertIsNone(self.Animal.get_storage_handle())

    handle = self.Animal.compile()
    schema = self.Animal.get_schema()

    self.assertTrue(self.Animal.is_compiled())
    self.assertIs(self.Animal.compile(), handle)
    self.assertIs(self.Animal.get_storage_handle(), handle)
    self.assertIs(self.Animal.get_schema(), schema)
    self.assertEqual(self.Animal.get_collection_name(), "Animal")
    self.assertEqual(self.Animal.get_discriminator_key(), "_type")
    self.assertEqual(self.engine.registered, [("Animal", "Animal")])

  def test_first_instance_compiles(self):
    self.Animal(name="Rex")
    self.Animal(name="Fido")
    self.assertTrue(self.Animal.is_compiled())
    self.assertEqual(len(self.engine.registered), 1)

  def test_schema_descriptor_sent_to_engine(self):
    handle = self.Animal.compile()
    self.assertEqual(handle.schema, {"name": {"type": "str"}})
    self.assertEqual(handle.name, "Animal")
    self.assertEqual(handle.discriminator_key, "_type")
    self.assertEqual(handle.version_key, "__v")
    self.assertFalse(handle.strict)

  def test_compile_needs_name(self):
    registry = self.registry

    class Nameless(Model):
      __registry__ = registry
      size = Field()

    error = self.assert_raises(ConfigurationError, Nameless.compile)
    self.assertEqual(str(error), "The model needs a name and a schema before it can be compiled")
    self.assertRaises(ConfigurationError, lambda: Nameless(size=1))
    self.assertEqual(self.engine.registered, [])

  def test_compile_needs_engine(self):
    registry = ModelRegistry()

    class Unbound(Model):
      __registry__ = registry
      __model_name__ = "Unbound"
      size = Field()

    self.assertRaises(ConfigurationError, Unbound.compile)
    self.assertFalse(Unbound.is_compiled())

    engine = MemoryEngine()
    registry.bind(engine)
    Unbound.compile()
    self.assertEqual(engine.registered, [("Unbound", "Unbound")])

  def test_schema_less_class_can_not_compile(self):
    class Bag(Model):
      pass

    self.assertFalse(Bag.has_schema())
    self.assertFalse(Bag.is_compiled())
    self.assertIsNone(Bag.get_schema())
    self.assertEqual(Bag.fields, {})
    error = self.assert_raises(ConfigurationError, Bag.compile)
    self.assertEqual(str(error), "The schema is not defined")

  def test_duplicate_model_name(self):
    registry = self.registry

    class Other(Model):
      __registry__ = registry
      __model_name__ = "Animal"
      size = Field()

    self.Animal.compile()
    self.assertRaises(ConfigurationError, Other.compile)
    self.assertFalse(Other.is_compiled())

  def test_bind_after_compile(self):
    self.Animal.compile()
    self.assertIs(self.registry.bind(self.engine), self.registry)
    self.assertRaises(ConfigurationError, lambda: self.registry.bind(MemoryEngine()))
    self.assertIs(self.registry.engine, self.engine)

  def test_entries(self):
    entry = self.registry.entry_for(self.Animal)
    self.assertIs(entry, self.Animal._schema_entry)
    self.assertEqual(self.registry.entries(), [entry])
    self.assertEqual(entry.options(), {
      "name": "Animal", "discriminator_key": "_type", "version_key": "__v", "strict": False})

  def test_concurrent_first_use_registers_once(self):
    engine = _SlowEngine()
    registry = ModelRegistry(engine)

    class Racer(Model):
      __registry__ = registry
      __model_name__ = "Racer"
      lap = Field(int)

    handles = []
    barrier = threading.Barrier(8)

    def use():
      barrier.wait()
      handles.append(Racer(lap=1).__class__.get_storage_handle())

    threads = [threading.Thread(target=use) for _ in range(8)]
    for thread in threads:
      thread.start()
    for thread in threads:
      thread.join()

    self.assertEqual(engine.registered, [("Racer", "Racer")])
    self.assertEqual(len(handles), 8)
    self.assertTrue(all(handle is handles[0] for handle in handles))

  def test_compile_logs(self):
    with self.assertLogs("docmodel.model.registry", level="DEBUG") as cm:
      self.Animal.compile()
    self.assertEqual(len(cm.output), 1)
    self.assertIn("Compiled model Animal into collection Animal", cm.output[0])

  def test_connect_binds_default_registry(self):
    previous = default_registry.engine
    engine = MemoryEngine()
    try:
      self.assertIs(connect(engine), default_registry)
      self.assertIs(default_registry.engine, engine)
    finally:
      default_registry.engine = previous
