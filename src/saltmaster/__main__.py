from saltmaster.main import main

main()
