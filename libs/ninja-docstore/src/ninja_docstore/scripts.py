"""Server-side scripts run by the JSON repository.

Script sources are module constants shared by every repository in the
process. Each repository registers them through ``Redis.register_script``,
which hashes the source once and sends ``EVALSHA``, loading the script
again if the server answers ``NOSCRIPT``.
"""

# Check-and-set on the version field, then bump it. Runs atomically on the server.
# KEYS[1] = document key, ARGV[1] = version path, ARGV[2] = expected version,
# ARGV[3] = new document. Returns the new version, or nil on conflict.
JSON_SAVE_SCRIPT = """
local v = redis.call('JSON.GET',KEYS[1],ARGV[1])
if (not v or v == ARGV[2])
then
  redis.call('JSON.SET',KEYS[1],'$',ARGV[3])
  return redis.call('JSON.NUMINCRBY',KEYS[1],ARGV[1],1)
end
return nil
"""
