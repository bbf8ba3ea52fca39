import logging

from os import walk
from os.path import join, relpath
from selstorage import ClientRegistry, ClientException
from sys import argv

logging.basicConfig(level=logging.ERROR)
logging.getLogger("requests").setLevel(logging.CRITICAL)
logging.getLogger("selstorage").setLevel(logging.CRITICAL)
logger = logging.getLogger(__name__)

dir = argv[1]
prefix = argv[2] if len(argv) > 2 else ''
client = ClientRegistry.from_config_file().static()
try:
    for (_dir, _ds, _fs) in walk(dir):
        for _f in _fs:
            local_path = join(_dir, _f)
            object_name = prefix + relpath(local_path, dir)
            status = client.upload_file(local_path, object_name)
            if status == 201:
                print(client.get_public_url(object_name))
            else:
                logger.error(
                    "Failed to upload %s: status %s", local_path, status
                )

except ClientException as e:
    logger.error(e)
