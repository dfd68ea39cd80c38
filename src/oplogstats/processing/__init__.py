# Copyright © 2025 Sierra Labs LLC
# SPDX-License-Identifier: AGPL-3.0-only
# License-Filename: LICENSE

"""
Processing layer for oplog-stats.
Tails the change log from Redis Streams and writes summaries to SQLite.
"""
