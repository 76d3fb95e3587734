# -*- coding: utf-8 -*-
from . import api_client
from . import graph_api
from . import product_retriever
from . import feed_builder
from . import feed_writer
from . import feed_identity
from . import feed_publisher
from . import product_events
