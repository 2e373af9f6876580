from bson import ObjectId

from docmodel.model.field import Field
from docmodel.model.model import Model

from tests.helpers import DocModelTestCase


class ScopingTest(DocModelTestCase):
  def setUp(self):
    super(ScopingTest, self).setUp()
    registry = self.registry

    class Animal(Model):
      __registry__ = registry
      __model_name__ = "Animal"
      name = Field(str)
      loc = Field(list)

    class Dog(Animal):
      __model_name__ = "Dog"
      breed = Field(str)

    self.Animal = Animal
    self.Dog = Dog

  def _conditions(self, operation):
    calls = self.engine.calls_to(operation)
    self.assertEqual(len(calls), 1)
    return calls[0].args

  def test_find_is_scoped(self):
    self.Dog.find({"name": "Rex"})
    self.assertEqual(self._conditions("find")[0], {"name": "Rex", "_type": "Dog"})

  def test_no_conditions(self):
    self.Dog.find()
    self.assertEqual(self._conditions("find")[0], {"_type": "Dog"})

  def test_explicit_discriminator_is_kept(self):
    self.Dog.find({"_type": "Cat"})
    self.assertEqual(self._conditions("find")[0], {"_type": "Cat"})

    self.Animal.count({"_type": {"$in": ["Animal", "Dog"]}})
    self.assertEqual(self._conditions("count")[0], {"_type": {"$in": ["Animal", "Dog"]}})

  def test_caller_conditions_are_not_modified(self):
    conditions = {"name": "Rex"}
    self.Dog.find(conditions)
    self.Dog.count(conditions)
    self.assertEqual(conditions, {"name": "Rex"})

  def test_every_operation_is_scoped(self):
    oid = ObjectId()
    expected = {"name": "Rex", "_type": "Dog"}
    by_id = {"_id": oid, "_type": "Dog"}

    operations = [
      ("find_one", lambda: self.Dog.find_one({"name": "Rex"}), lambda args: args[0], expected),
      ("count", lambda: self.Dog.count({"name": "Rex"}), lambda args: args[0], expected),
      ("distinct", lambda: self.Dog.distinct("breed", {"name": "Rex"}), lambda args: args[1], expected),
      ("update", lambda: self.Dog.update({"name": "Rex"}, {"breed": "Pug"}), lambda args: args[0], expected),
      ("find_one_and_update",
       lambda: self.Dog.find_one_and_update({"name": "Rex"}, {"breed": "Pug"}), lambda args: args[0], expected),
      ("find_one_and_remove",
       lambda: self.Dog.find_one_and_remove({"name": "Rex"}), lambda args: args[0], expected),
      ("geo_search",
       lambda: self.Dog.geo_search({"name": "Rex"}, {"near": [0, 0], "max_distance": 1}),
       lambda args: args[0], expected),
      ("geo_near",
       lambda: self.Dog.geo_near([0, 0], {"query": {"name": "Rex"}}), lambda args: args[1]["query"], expected),
      ("map_reduce",
       lambda: self.Dog.map_reduce({
         "map": lambda record: [(record["name"], 1)],
         "reduce": lambda key, values: sum(values),
         "query": {"name": "Rex"}}),
       lambda args: args[0]["query"], expected),
    ]
    for operation, action, get_conditions, conditions in operations:
      self.engine.calls = []
      action()
      self.assertEqual(get_conditions(self._conditions(operation)), conditions, operation)

    id_operations = [
      ("find_one", lambda: self.Dog.find_by_id(oid)),
      ("find_one_and_update", lambda: self.Dog.find_by_id_and_update(str(oid), {"breed": "Pug"})),
      ("find_one_and_remove", lambda: self.Dog.find_by_id_and_remove(oid)),
    ]
    for operation, action in id_operations:
      self.engine.calls = []
      action()
      self.assertEqual(self._conditions(operation)[0], by_id, operation)

  def test_populate_lookup_is_scoped(self):
    registry = self.registry

    class Owner(Model):
      __registry__ = registry
      __model_name__ = "Owner"
      pets = Field(list)

    owner = Owner(pets=[ObjectId()]).save()
    Owner.populate(owner, "pets", self.Dog)
    self.assertEqual(self._conditions("populate")[1]["match"], {"_type": "Dog"})

  def test_aggregate_is_not_scoped(self):
    self.Animal(name="Generic").save()
    self.Dog(name="Rex").save()

    pipeline = [{"$match": {}}]
    result = self.Dog.aggregate(pipeline)

    self.assertEqual(self._conditions("aggregate")[0], [{"$match": {}}])
    self.assertEqual(sorted(record["name"] for record in result), ["Generic", "Rex"])
    self.assertIsInstance(result[0], dict)

  def test_root_without_children_is_not_scoped(self):
    registry = self.registry

    class Plant(Model):
      __registry__ = registry
      __model_name__ = "Plant"
      name = Field(str)

    Plant.find({})
    self.assertEqual(self._conditions("find")[0], {})

    Plant(name="Fern").save()
    self.assertEqual(self.engine.records("Plant")[0]["_type"], "Plant")

  def test_shared_collection_queries(self):
    self.Animal(name="Generic").save()
    rex = self.Dog(name="Rex", breed="Lab").save()

    dogs = self.Dog.find({})
    self.assertEqual([dog.name for dog in dogs], ["Rex"])
    self.assertIsInstance(dogs[0], self.Dog)
    self.assertEqual(dogs[0].get("_type"), "Dog")

    self.assertEqual([animal.name for animal in self.Animal.find({})], ["Generic"])

    tagged = self.Animal.find({"_type": "Dog"})
    self.assertEqual(len(tagged), 1)
    self.assertIsInstance(tagged[0], self.Dog)
    self.assertEqual(tagged[0].breed, "Lab")

    everything = self.Animal.find(self.Animal.hierarchy_filter(), None, {"sort": "name"})
    self.assertEqual([type(animal) for animal in everything], [self.Animal, self.Dog])

    self.assertIsNone(self.Animal.find_by_id(rex.get("_id")))
    self.assertEqual(self.Dog.find_by_id(str(rex.get("_id"))).name, "Rex")
    self.assertEqual(self.Animal.count(), 1)
    self.assertEqual(self.Dog.count(), 1)

  def test_upserts_through_root_are_tagged(self):
    registry = self.registry

    class Plant(Model):
      __registry__ = registry
      __model_name__ = "Plant"
      name = Field(str)
      age = Field(int)

    Plant.update({"name": "Tom"}, {"$set": {"age": 3}}, {"upsert": True})
    self.assertEqual(self._conditions("update")[1], {"$set": {"age": 3}, "$setOnInsert": {"_type": "Plant"}})
    ivy = Plant.find_one_and_update({"name": "Ivy"}, {"age": 1}, {"upsert": True, "new": True})
    self.assertEqual(ivy.get("_type"), "Plant")
    self.assertEqual([record["_type"] for record in self.engine.records("Plant")], ["Plant", "Plant"])

    class Fern(Plant):
      __model_name__ = "Fern"
      fronds = Field(int)

    self.assertEqual(sorted(plant.name for plant in Plant.find({})), ["Ivy", "Tom"])
    self.assertEqual(Fern.find({}), [])

  def test_upsert_keeps_tag_of_matched_record(self):
    self.Dog(name="Rex").save()

    conditions = dict(self.Animal.hierarchy_filter(), name="Rex")
    self.Animal.update(conditions, {"breed": "Pug"}, {"upsert": True})

    records = self.engine.records("Animal")
    self.assertEqual(len(records), 1)
    self.assertEqual((records[0]["_type"], records[0]["breed"]), ("Dog", "Pug"))

  def test_upsert_writing_discriminator_is_untouched(self):
    self.Animal.update({"name": "Rex"}, {"$set": {"_type": "Dog"}}, {"upsert": True})
    self.assertEqual(self._conditions("update")[1], {"$set": {"_type": "Dog"}})
    self.assertEqual(self.Dog.find_one({"name": "Rex"}).name, "Rex")

    self.engine.calls = []
    self.Animal.update({"name": "Rex"}, {"name": "Max"})
    self.assertEqual(self._conditions("update")[1], {"name": "Max"})
