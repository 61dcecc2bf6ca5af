from . errors import *
from . pda import *
from . records import *
from . remote import *
from . sync import *
from . config import SyncConfig, load_config, loads_config, save_config
