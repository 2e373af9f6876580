from docmodel.engine.base import CollectionHandle, StorageEngine
from docmodel.engine.memory import MemoryEngine
from docmodel.engine.mongo import MongoEngine
from docmodel.engine.data_api import DataApiClient, DataApiEngine
