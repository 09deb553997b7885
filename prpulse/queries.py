"""GraphQL documents sent to the GitHub API.

These are stored in a separate file to keep the fetch and validation code
readable. Page sizes are fixed; nothing here paginates.
"""

SEARCH_PAGE_SIZE = 50

INVOLVED_SEARCH = "is:pr is:open involves:@me sort:updated-desc"
REVIEW_REQUESTED_SEARCH = "is:pr is:open review-requested:@me sort:updated-desc"

# Every field needed to rebuild a PR's state without the other query.
PULL_REQUEST_FRAGMENT = """fragment PullRequestFields on PullRequest {
  id
  number
  title
  url
  isDraft
  updatedAt
  mergeable
  author { login }
  repository {
    nameWithOwner
    name
  }
  commits(last: 1) {
    nodes {
      commit {
        statusCheckRollup {
          state
          contexts(first: 50) {
            nodes {
              __typename
              ... on CheckRun {
                name
                status
                conclusion
              }
              ... on StatusContext {
                context
                state
              }
            }
          }
        }
      }
    }
  }
  reviews(last: 20) {
    nodes {
      id
      state
      createdAt
      author { login }
    }
  }
  comments(last: 10) {
    totalCount
    nodes {
      id
      url
      body
      createdAt
      author { login }
    }
  }
  reviewThreads(last: 10) {
    nodes {
      id
      comments(last: 10) {
        nodes {
          id
          url
          body
          createdAt
          author { login }
        }
      }
    }
  }
}"""


def build_search_query(search: str, page_size: int = SEARCH_PAGE_SIZE) -> str:
    """Build a document that returns the viewer's login and one page of PRs."""
    return f"""query {{
  viewer {{ login }}
  search(query: "{search}", type: ISSUE, first: {page_size}) {{
    nodes {{
      ... on PullRequest {{
        ...PullRequestFields
      }}
    }}
  }}
}}

{PULL_REQUEST_FRAGMENT}"""


INVOLVED_QUERY = build_search_query(INVOLVED_SEARCH)
REVIEW_REQUESTED_QUERY = build_search_query(REVIEW_REQUESTED_SEARCH)

# Token permission probes. Each asks for as little as possible so that a
# missing scope surfaces as an error on exactly one probe.
PULL_REQUESTS_PROBE = """{
  viewer {
    login
    pullRequests(first: 1, states: OPEN) {
      totalCount
    }
  }
}"""

COMMIT_STATUSES_PROBE = """{
  viewer {
    pullRequests(first: 1, states: OPEN) {
      nodes {
        commits(last: 1) {
          nodes {
            commit {
              statusCheckRollup {
                state
              }
            }
          }
        }
      }
    }
  }
}"""

REVIEWS_PROBE = """{
  viewer {
    pullRequests(first: 1, states: OPEN) {
      nodes {
        reviews(last: 1) {
          nodes {
            state
          }
        }
      }
    }
  }
}"""

COMMENTS_PROBE = """{
  viewer {
    pullRequests(first: 1, states: OPEN) {
      nodes {
        comments(last: 1) {
          totalCount
          nodes {
            body
          }
        }
      }
    }
  }
}"""
