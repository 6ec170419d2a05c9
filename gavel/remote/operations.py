"""GraphQL documents understood by the auction server."""

_AUCTION_FIELDS = """
      id
      startingBid
      currentBid
      currentWinner
      duration
      extendedBidding
      status
      nextBid
      timeRemaining
"""

_BID_FIELDS = """
      id
      userId
      amount
      timestamp
"""

CREATE_AUCTION = f"""
  mutation CreateAuction($startingBid: Float!, $duration: Int, $extendedBidding: Boolean) {{
    createAuction(startingBid: $startingBid, duration: $duration, extendedBidding: $extendedBidding) {{
{_AUCTION_FIELDS}
    }}
  }}
"""

PLACE_BID = f"""
  mutation PlaceBid($userId: String!, $amount: Float!) {{
    placeBid(userId: $userId, amount: $amount) {{
{_BID_FIELDS}
    }}
  }}
"""

GET_CURRENT_AUCTION = f"""
  query GetCurrentAuction {{
    currentAuction {{
{_AUCTION_FIELDS}
    }}
  }}
"""

AUCTION_EVENTS = f"""
  subscription AuctionEvents {{
    auctionEvents {{
      type
      auction {{
        id
        currentBid
        currentWinner
        status
        nextBid
        timeRemaining
      }}
      bid {{
{_BID_FIELDS}
      }}
      error
    }}
  }}
"""
