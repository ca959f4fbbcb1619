"""BountyBoard: a gamified bounty and reward economy."""
