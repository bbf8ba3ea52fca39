import logging

from os.path import basename
from selstorage import ClientRegistry, ServiceError
from sys import argv

logging.basicConfig(level=logging.ERROR)
logging.getLogger("requests").setLevel(logging.CRITICAL)
logging.getLogger("selstorage").setLevel(logging.CRITICAL)
logger = logging.getLogger(__name__)

storage_type = argv[1]
client = ClientRegistry.from_config_file().get(storage_type)
for url in argv[2:]:
    try:
        if client.download_file(url, basename(url)):
            print(basename(url))
        else:
            logger.error("Incomplete download of %s", url)
    except ServiceError as e:
        if e.not_found:
            logger.warning("%s is gone", url)
        else:
            logger.error(e)
