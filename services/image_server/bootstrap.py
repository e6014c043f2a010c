"""
Server assembly.

Builds the listener registry, resource pipelines and collaborators once at
startup. The registry is frozen before it is returned; requests share it
read-only.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, Optional

from .core.access_token import AccessTokenValidator
from .core.events import EventBus
from .core.pipeline import ResourcePipeline
from .core.signature import SignatureGenerator, build_signature_generator
from .models import ServerOptions
from .services.access_control import AccessControl, FileAccessControl
from .services.database import DatabaseAdapter, InMemoryDatabase
from .services.image_resource import ImageResource, build_image_pipeline
from .services.image_transform import register_transformations
from .services.processor import ImageRequestProcessor
from .services.short_urls import ShortUrlResource, ShortUrlStore, build_short_url_pipeline
from .services.storage import InMemoryStorage, StorageAdapter, build_storage

logger = logging.getLogger("image_server.bootstrap")


@dataclass
class ServerComponents:
    options: ServerOptions
    bus: EventBus
    processor: ImageRequestProcessor
    access_control: AccessControl
    storage: StorageAdapter
    database: DatabaseAdapter
    short_urls: ShortUrlStore
    pipelines: Dict[str, ResourcePipeline] = field(default_factory=dict)


def build_components(
    access_control: AccessControl,
    options: Optional[ServerOptions] = None,
    storage: Optional[StorageAdapter] = None,
    database: Optional[DatabaseAdapter] = None,
    access_token_generator: Optional[SignatureGenerator] = None,
    short_urls: Optional[ShortUrlStore] = None,
) -> ServerComponents:
    """
    Wire collaborators, plugins and transformations into a frozen registry.

    Raises:
        ConfigurationError: invalid generator or registration
    """
    options = options or ServerOptions()
    storage = storage if storage is not None else InMemoryStorage()
    database = database if database is not None else InMemoryDatabase()
    short_urls = short_urls if short_urls is not None else ShortUrlStore()

    validator = AccessTokenValidator(
        transformations=options.transformations,
        access_token_generator=access_token_generator,
    )

    bus = EventBus()
    register_transformations(bus)

    pipelines = {
        pipeline.resource_name: pipeline
        for pipeline in (
            build_image_pipeline(ImageResource(storage, database), bus, validator),
            build_short_url_pipeline(ShortUrlResource(short_urls, database), bus, validator),
        )
    }
    bus.freeze()

    processor = ImageRequestProcessor(pipelines, options, access_control)
    logger.info(
        "Image server components initialized",
        extra={
            "storage": type(storage).__name__,
            "database": type(database).__name__,
            "protocol": options.authentication.protocol,
        },
    )

    return ServerComponents(
        options=options,
        bus=bus,
        processor=processor,
        access_control=access_control,
        storage=storage,
        database=database,
        short_urls=short_urls,
        pipelines=pipelines,
    )


def build_components_from_config(config) -> ServerComponents:
    access_control = FileAccessControl(config.ACCESS_CONTROL_CONFIG_PATH)
    access_control.load_keys_config()

    return build_components(
        access_control=access_control,
        options=ServerOptions.from_config(config),
        storage=build_storage(config),
        database=InMemoryDatabase(),
        access_token_generator=build_signature_generator(
            config.ACCESS_TOKEN_ARGUMENT, config.ACCESS_TOKEN_GENERATORS
        ),
    )
