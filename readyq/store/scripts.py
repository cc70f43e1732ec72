"""
Lua scripts executed atomically by the Redis server.

Each script runs as one indivisible unit, which is the only mutual
exclusion between concurrent pollers.
"""

# Claim every entry in a score window and remove it in the same step.
# KEYS[1] = queue set, KEYS[2] = lease set (optional)
# ARGV[1] = min score, ARGV[2] = max score, ARGV[3] = limit (0 = no limit),
# ARGV[4] = lease score (only read when KEYS[2] is given)
# Returns a flat [member, score, member, score, ...] list, highest score first.
CLAIM_DUE = """
local limit = tonumber(ARGV[3])
local entries
if limit > 0 then
  entries = redis.call('ZREVRANGEBYSCORE', KEYS[1], ARGV[2], ARGV[1], 'WITHSCORES', 'LIMIT', 0, limit)
else
  entries = redis.call('ZREVRANGEBYSCORE', KEYS[1], ARGV[2], ARGV[1], 'WITHSCORES')
end
if #entries == 0 then
  return entries
end
if limit > 0 then
  for i = 1, #entries, 2 do
    redis.call('ZREM', KEYS[1], entries[i])
  end
else
  redis.call('ZREMRANGEBYSCORE', KEYS[1], ARGV[1], ARGV[2])
end
if #KEYS > 1 then
  for i = 1, #entries, 2 do
    redis.call('ZADD', KEYS[2], ARGV[4], entries[i])
  end
end
return entries
"""

# Drop a lease entry and, if it was still held, optionally requeue a member.
# KEYS[1] = lease set, KEYS[2] = queue set (optional)
# ARGV[1] = leased member, ARGV[2] = requeue member, ARGV[3] = requeue score
# Returns 1 when the lease was held, 0 when it had already been reclaimed.
RELEASE_LEASE = """
local removed = redis.call('ZREM', KEYS[1], ARGV[1])
if removed == 1 and #KEYS > 1 then
  redis.call('ZADD', KEYS[2], ARGV[3], ARGV[2])
end
return removed
"""

# Move expired lease entries back into the queue.
# KEYS[1] = lease set, KEYS[2] = queue set
# ARGV[1] = min score, ARGV[2] = max score, ARGV[3] = requeue score, ARGV[4] = limit
# Returns the moved members.
RECLAIM_EXPIRED = """
local members = redis.call('ZREVRANGEBYSCORE', KEYS[1], ARGV[2], ARGV[1], 'LIMIT', 0, tonumber(ARGV[4]))
for _, member in ipairs(members) do
  redis.call('ZREM', KEYS[1], member)
  redis.call('ZADD', KEYS[2], ARGV[3], member)
end
return members
"""

# Push a held lease's deadline out.
# KEYS[1] = lease set; ARGV[1] = member, ARGV[2] = new lease score
EXTEND_LEASE = """
if redis.call('ZSCORE', KEYS[1], ARGV[1]) then
  redis.call('ZADD', KEYS[1], ARGV[2], ARGV[1])
  return 1
end
return 0
"""
