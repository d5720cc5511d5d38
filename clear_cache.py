#!/usr/bin/env python3
"""
Script to clear the Redis property cache.
Run this after editing properties directly in Supabase.
"""
import asyncio

from marketplace.core.cache import close_redis, invalidate_properties_cache

async def clear_cache():
    deleted = await invalidate_properties_cache()
    if deleted:
        print(f"✓ Cleared {deleted} cache keys")
    else:
        print("✓ No cache keys found")
    await close_redis()

if __name__ == "__main__":
    asyncio.run(clear_cache())
