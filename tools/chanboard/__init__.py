"""
chanboard – storage and media engine for a minimal anonymous imageboard.

Supports:
  • Threads and replies stored in an embedded, ordered key-value store
  • Image (JPEG, PNG, GIF, WEBP) and MP4 attachments streamed to disk
  • Thumbnails for static images
  • A recency-sorted, paginated front page
"""
