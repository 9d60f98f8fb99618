REDIS_DB_KEY = "valve:db"  # whole durable snapshot, JSON string

# **Example `valve:db` document**
# {
#   "rooms": {
#     "VALVE-K7QD": {
#       "masterName": "Ana",
#       "sessionName": "Campaign 1",
#       "createdAt": 1760000000000,   # epoch milliseconds
#       "players": {
#         "mg3x1k2abcd": {"name": "Bo", "fichaData": {"hp": 10}}
#       }
#     }
#   }
# }
