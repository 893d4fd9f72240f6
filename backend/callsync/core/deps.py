from fastapi import Depends

from callsync.core.config import Settings, get_settings
from callsync.services.vapi_client import VapiClient


def get_vapi_client(settings: Settings = Depends(get_settings)):
    client = VapiClient.from_settings(settings)
    try:
        yield client
    finally:
        client.close()
