from typing import Any, Mapping, Protocol, Sequence, runtime_checkable


@runtime_checkable
class ImageSourcePort(Protocol):
    async def get_images(
        self,
        file_key: str,
        node_ids: Sequence[str],
        *,
        format: str = "png",
        scale: float = 1.0,
    ) -> Mapping[str, Any]:
        """
        Render a batch of nodes and return their image URLs.

        Args:
            file_key: Design file key
            node_ids: At most 50 node ids
            format: png, jpg, svg or pdf
            scale: Render scale factor

        Returns:
            ``{"images": {node_id: url | None}}`` on success or
            ``{"err": message}`` when the upstream API rejects the batch
        """
        ...
