import logging

from selstorage import ClientRegistry, ClientException
from sys import argv

logging.basicConfig(level=logging.ERROR)
logging.getLogger("requests").setLevel(logging.CRITICAL)
logging.getLogger("selstorage").setLevel(logging.CRITICAL)
logger = logging.getLogger(__name__)

prefix = argv[1] if len(argv) > 1 else None
registry = ClientRegistry.from_config_file()
for storage_type in registry.configured_types():
    try:
        for name in registry.get(storage_type).list_files(prefix=prefix):
            print("%s: %s" % (storage_type, name))
    except ClientException as e:
        logger.error(e)
