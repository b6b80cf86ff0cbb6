import logging
import os
import random
import time
from pathlib import Path

from werkzeug.utils import secure_filename

from storefront.errors import ValidationError

logger = logging.getLogger(__name__)


class MediaStore:
    """Saves admin uploads into the media directory under unique names."""

    def __init__(self, media_dir, allowed_extensions, max_files=20):
        self.media_dir = Path(media_dir)
        self.allowed_extensions = {ext.lower() for ext in allowed_extensions}
        self.max_files = max_files

    def allowed(self, filename, mimetype):
        ext = os.path.splitext(filename)[1].lower().lstrip('.')
        kind = (mimetype or '').split('/')[-1].lower()
        return ext in self.allowed_extensions and kind in self.allowed_extensions | {'quicktime'}

    def save_all(self, files, field_name='media'):
        files = [f for f in files if f and f.filename]
        if not files:
            raise ValidationError('No files uploaded')
        if len(files) > self.max_files:
            raise ValidationError(f'At most {self.max_files} files per upload')
        for f in files:
            if not self.allowed(f.filename, f.mimetype):
                raise ValidationError(f'Invalid file type: {f.filename}')

        self.media_dir.mkdir(parents=True, exist_ok=True)
        saved = []
        for f in files:
            ext = os.path.splitext(secure_filename(f.filename))[1].lower()
            filename = f'{field_name}-{int(time.time() * 1000)}-{random.randint(0, 10 ** 9)}{ext}'
            path = self.media_dir / filename
            f.save(path)
            saved.append({
                'url': f'/media/{filename}',
                'filename': filename,
                'originalname': f.filename,
                'mimetype': f.mimetype,
                'size': path.stat().st_size
            })
        logger.info('Uploaded %d media file(s)', len(saved))
        return saved
