import logging

logger = logging.getLogger("sails_client")
