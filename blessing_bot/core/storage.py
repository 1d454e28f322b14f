from __future__ import annotations

from pathlib import Path

from loguru import logger

from blessing_bot.core.ids import generate_filename


class MediaStorage:
    """Keeps rendered greetings on disk until they have been delivered."""

    def __init__(self, base_dir: Path) -> None:
        self.base_dir = Path(base_dir)
        self.base_dir.mkdir(parents=True, exist_ok=True)

    def save_greeting(self, content: bytes) -> Path:
        target_path = self.base_dir / generate_filename("greeting", "png")
        target_path.write_bytes(content)
        logger.debug("Saved greeting image to {} ({} bytes)", target_path, len(content))
        return target_path

    def delete(self, path: Path) -> bool:
        target_path = Path(path)
        if target_path.parent.resolve() != self.base_dir.resolve():
            raise ValueError(f"{target_path} is outside of {self.base_dir}")
        try:
            target_path.unlink()
        except FileNotFoundError:
            logger.debug("Greeting image {} already removed", target_path)
            return False
        logger.info("Deleted greeting image {}", target_path.name)
        return True
