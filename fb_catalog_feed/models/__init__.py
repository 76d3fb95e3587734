# -*- coding: utf-8 -*-
from . import system_config
from . import publish_log
