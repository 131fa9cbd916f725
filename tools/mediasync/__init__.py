"""
mediasync – Mirror the media of tracked authors to local disk.

Supports:
  • Discovering every post on an author's media feed (oldest first)
  • Classifying posts as locked / video / gallery / single image
  • Downloading each media file once, deduplicated per post
  • Resumable operation via persisted post and media state
"""
