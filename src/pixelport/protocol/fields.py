"""Protocol constants.

Keep these in one place to avoid stringly-typed line handling.
"""

# Reply statuses
OK = 'ok'
ERR = 'err'

# The body of a reply that carries none
NIL_BODY = '()'

# Default command used to close a stream channel
CLOSE_COMMAND = 'channel_close'
CLOSE_FIELD = 'channel_id'
