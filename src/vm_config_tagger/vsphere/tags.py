"""Tag lookup and application for tier tags."""
import logging
from typing import Iterable, Optional

from vm_config_tagger.errors import TagApplicationError, TagResolutionError, TaggingAPIError
from vm_config_tagger.schemas import ObjectReference, ResourceCategory, Tag, TagSelection
from vm_config_tagger.vsphere.client import VSphereClient

logger = logging.getLogger(__name__)


def find_tag(tags: Iterable[Tag], tag_name: str) -> Optional[TagSelection]:
    """Return the first tag named exactly `tag_name`."""
    for tag in tags:
        if tag.name == tag_name:
            return TagSelection(category_id=tag.category_id, tag_id=tag.id, tag_name=tag.name)
    return None


def resolve_tag(client: VSphereClient, category: ResourceCategory,
                tier_name: str) -> Optional[TagSelection]:
    """Find the tag for `tier_name` in the tag category of `category`.

    Tag categories are managed outside this function and may not (yet) hold
    a tag for every tier, so a missing tag is `None` rather than an error.

    Raises:
        TagResolutionError: the category is unknown or listing its tags failed
    """
    category_name = category.tag_category
    if category_name is None:
        raise TagResolutionError(f"no tag category for {category.value} alarms")

    try:
        tags = client.tagging.get_tags_for_category(category_name)
    except TaggingAPIError as e:
        raise TagResolutionError(f"listing tags of category {category_name}: {e}") from e

    logger.debug(f"Category {category_name} has tags {[t.name for t in tags]}")
    return find_tag(tags, tier_name)


def is_attached(client: VSphereClient, obj_ref: ObjectReference, tag_id: str) -> bool:
    """Check whether `tag_id` is already attached to the object."""
    try:
        return tag_id in client.tagging.list_attached_tags(obj_ref)
    except TaggingAPIError as e:
        raise TagApplicationError(f"listing tags attached to {obj_ref.value}: {e}") from e


def apply_tag(client: VSphereClient, obj_ref: ObjectReference, selection: TagSelection) -> None:
    """Attach the selected tag to the object."""
    try:
        client.tagging.attach_tag(selection.tag_id, obj_ref)
    except TaggingAPIError as e:
        raise TagApplicationError(f"attach tag to VM failed: {e}") from e
