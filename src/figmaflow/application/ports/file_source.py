from typing import Any, Mapping, Protocol, runtime_checkable


@runtime_checkable
class FileSourcePort(Protocol):
    async def get_file(self, file_key: str) -> Mapping[str, Any]:
        """
        Fetch the full file response for a design file.

        Args:
            file_key: Design file key

        Returns:
            File response mapping with keys:
            - document (dict): Root DOCUMENT node tree
            - name (str): File name
            - styles (dict, optional): style_id -> {name, styleType, description}
            - version (str, optional), lastModified (str, optional)

        Raises:
            Exception: Any failure; the pipeline wraps it in FetchError
        """
        ...
