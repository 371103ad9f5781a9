"""Media type classification by file extension."""

from .models import MediaType, StackerConfig


class MediaTypeClassifier:
    """Maps file extensions to image, video or other."""

    def __init__(self, config: StackerConfig | None = None):
        """Initialize the lookup tables from configuration."""
        config = config or StackerConfig()
        self.image_extensions = set(config.image_extensions)
        self.video_extensions = set(config.video_extensions)

    def type_from_extension(self, extension: str) -> MediaType:
        """
        Classify a file extension.

        Args:
            extension: Extension with or without leading dot, any case

        Returns:
            MediaType.IMAGE, MediaType.VIDEO or MediaType.OTHER
        """
        extension = extension.lower()
        if extension and not extension.startswith("."):
            extension = f".{extension}"

        if extension in self.image_extensions:
            return MediaType.IMAGE
        if extension in self.video_extensions:
            return MediaType.VIDEO
        return MediaType.OTHER
